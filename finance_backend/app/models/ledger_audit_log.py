"""
Ledger audit log model.

Append-only history of every state change to a ledger entry.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, Text, JSON
from sqlalchemy.sql import func
from finance_backend.app.db.session import Base
from finance_backend.app.models.finance_enums import LedgerAuditAction


class LedgerAuditLog(Base):
    """
    One row per ledger transition. Rows are never updated or deleted.
    """
    __tablename__ = "ledger_audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    ledger_entry_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=False, index=True)
    action = Column(Enum(LedgerAuditAction), nullable=False, index=True)
    previous_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    reason = Column(Text, nullable=True)
    performed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    performed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<LedgerAuditLog(id={self.id}, entry={self.ledger_entry_id}, action='{self.action.value}')>"
