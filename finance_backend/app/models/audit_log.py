"""
Audit Log Database Model.

Tracks security events (logins, logouts) for compliance and monitoring.
Ledger transitions have their own table, see ledger_audit_log.py.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from finance_backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking security events.

    Events logged:
    - LOGIN_SUCCESS / LOGIN_FAILED
    - LOGOUT
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for unknown users on failed logins)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # IP address for login tracking
    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_username})>"
