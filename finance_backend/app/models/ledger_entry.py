"""
Ledger Entry database model.

One financial transaction against a payment mode (or a pair of payment
modes for self transfers), together with its approval and edit-request
state.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey, DateTime, Enum, String, Text, Boolean, JSON
from sqlalchemy.sql import func
from finance_backend.app.db.session import Base
from finance_backend.app.models.finance_enums import TransactionType, LedgerStatus


class LedgerEntry(Base):
    """
    Ledger Entry model.

    Amount fields by type:
        CREDIT        -> received_amount
        DEBIT         -> payment_amount (= component_a + component_b)
        SELF_TRANSFER -> transfer_amount (from_payment_mode -> to_payment_mode)

    `opening_balance` / `current_balance` are snapshots of the affected
    payment mode taken when the entry was created or decided; they are not
    live balances.
    """
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    serial_number = Column(String(20), unique=True, nullable=False, index=True)
    transaction_type = Column(Enum(TransactionType), nullable=False, index=True)
    transaction_date = Column(DateTime(timezone=True), nullable=False, index=True)
    description = Column(Text, nullable=False)

    # Master references (null for self transfers)
    party_id = Column(Integer, ForeignKey("party_masters.id"), nullable=True, index=True)
    head_id = Column(Integer, ForeignKey("head_masters.id"), nullable=True, index=True)
    payment_type_id = Column(Integer, ForeignKey("payment_type_masters.id"), nullable=True)
    payment_mode_id = Column(Integer, ForeignKey("payment_modes.id"), nullable=True, index=True)
    from_payment_mode_id = Column(Integer, ForeignKey("payment_modes.id"), nullable=True, index=True)
    to_payment_mode_id = Column(Integer, ForeignKey("payment_modes.id"), nullable=True, index=True)

    # Financials
    payment_amount = Column(Float, nullable=True)
    component_a = Column(Float, nullable=True)
    component_b = Column(Float, nullable=True)
    received_amount = Column(Float, nullable=True)
    transfer_amount = Column(Float, nullable=True)
    opening_balance = Column(Float, nullable=False, default=0.0)
    current_balance = Column(Float, nullable=False, default=0.0)

    # Approval flow
    status = Column(Enum(LedgerStatus), default=LedgerStatus.PENDING, nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Edit request flow
    edit_request_status = Column(Enum(LedgerStatus), nullable=True, index=True)
    edit_request_reason = Column(Text, nullable=True)
    edit_request_data = Column(JSON, nullable=True)
    edit_requested_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    edit_requested_at = Column(DateTime(timezone=True), nullable=True)
    edit_approval_reason = Column(Text, nullable=True)
    edit_approved_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    edit_approved_at = Column(DateTime(timezone=True), nullable=True)
    edit_previous_data = Column(JSON, nullable=True)  # pre-edit values, kept for undo
    edit_count = Column(Integer, default=0, nullable=False)

    # Soft delete
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    deleted_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def amount(self) -> float:
        """The amount that moves money for this entry's type."""
        if self.transaction_type == TransactionType.CREDIT:
            return self.received_amount or 0.0
        if self.transaction_type == TransactionType.SELF_TRANSFER:
            return self.transfer_amount or 0.0
        return self.payment_amount or 0.0

    def __repr__(self):
        return f"<LedgerEntry(id={self.id}, serial='{self.serial_number}', status='{self.status.value}')>"
