"""
Finance master data models.

Parties, heads, payment types and payment modes referenced by ledger entries.
A master is never hard-deleted; it is deactivated through `is_active`.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Float, Text
from sqlalchemy.sql import func
from finance_backend.app.db.session import Base
from finance_backend.app.models.finance_enums import PartyType, FinancePaymentType


class PartyMaster(Base):
    """Counterparty (vendor, client, ...) referenced by credits and debits."""
    __tablename__ = "party_masters"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    party_type = Column(Enum(PartyType), nullable=False)
    contact_name = Column(String(200), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    gst_number = Column(String(50), nullable=True)
    pan_number = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PartyMaster(id={self.id}, name='{self.name}')>"


class HeadMaster(Base):
    """Transaction category."""
    __tablename__ = "head_masters"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False)
    department = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<HeadMaster(id={self.id}, name='{self.name}')>"


class PaymentTypeMaster(Base):
    """Expense / non-expense classification of a payment."""
    __tablename__ = "payment_type_masters"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False)
    payment_type = Column(Enum(FinancePaymentType), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PaymentTypeMaster(id={self.id}, name='{self.name}')>"


class PaymentMode(Base):
    """
    Cash or bank account with a running balance.

    Intended invariant:
        current_balance == opening_balance + approved credits - approved debits
    `current_balance` is only ever moved by the balance calculator's
    increment functions, never assigned by API callers.
    """
    __tablename__ = "payment_modes"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    opening_balance = Column(Float, nullable=False, default=0.0)
    current_balance = Column(Float, nullable=False, default=0.0)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<PaymentMode(id={self.id}, name='{self.name}', balance={self.current_balance})>"
