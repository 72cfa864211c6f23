"""
Ledger Pydantic schemas.

Request and response models for ledger entries, their decisions, edit
requests and audit trail.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List, Dict, Any, Literal
from finance_backend.app.models.finance_enums import TransactionType, LedgerStatus, LedgerAuditAction


class LedgerEntryCreate(BaseModel):
    """
    Schema for creating a ledger entry.

    Which fields are required depends on the transaction type; the rules are
    enforced by the lifecycle service so they produce business-level errors.
    """
    transaction_type: TransactionType
    transaction_date: Optional[datetime] = None
    description: str = Field(..., min_length=1, max_length=2000)
    party_id: Optional[int] = None
    head_id: Optional[int] = None
    payment_type_id: Optional[int] = None
    payment_mode_id: Optional[int] = None
    payment_amount: Optional[float] = None
    component_a: Optional[float] = None
    component_b: Optional[float] = None
    received_amount: Optional[float] = None
    from_payment_mode_id: Optional[int] = None
    to_payment_mode_id: Optional[int] = None
    transfer_amount: Optional[float] = None


class LedgerEntryUpdate(BaseModel):
    """Direct update of a not-yet-approved entry."""
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    transaction_date: Optional[datetime] = None
    party_id: Optional[int] = None
    head_id: Optional[int] = None
    payment_type_id: Optional[int] = None


class LedgerEditChanges(BaseModel):
    """Fields an edit request may propose. Unknown fields are rejected."""
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    transaction_date: Optional[datetime] = None
    party_id: Optional[int] = None
    head_id: Optional[int] = None
    payment_type_id: Optional[int] = None
    payment_mode_id: Optional[int] = None
    from_payment_mode_id: Optional[int] = None
    to_payment_mode_id: Optional[int] = None
    payment_amount: Optional[float] = Field(None, gt=0)
    component_a: Optional[float] = Field(None, ge=0)
    component_b: Optional[float] = Field(None, ge=0)
    received_amount: Optional[float] = Field(None, gt=0)
    transfer_amount: Optional[float] = Field(None, gt=0)


class EditRequestCreate(BaseModel):
    """Body of POST /ledger/{id}/request-edit."""
    reason: str = Field(..., min_length=1)
    changes: Dict[str, Any]


class EditDecision(BaseModel):
    """Body of approve-edit / reject-edit."""
    reason: Optional[str] = None


class LedgerDecision(BaseModel):
    """Body of POST /ledger/{id}/approve."""
    action: Literal["approve", "reject"]
    rejection_reason: Optional[str] = None


class BulkLedgerDecision(BaseModel):
    """Body of POST /ledger/bulk-approve."""
    ids: List[int] = Field(..., min_length=1)
    action: Literal["approve", "reject"]
    rejection_reason: Optional[str] = None


class DeleteRequest(BaseModel):
    """Body of DELETE /ledger/{id}."""
    reason: str = Field(..., min_length=1)


class LedgerEntryResponse(BaseModel):
    """Schema for displaying a ledger entry."""
    id: int
    serial_number: str
    transaction_type: TransactionType
    transaction_date: datetime
    description: str
    party_id: Optional[int]
    head_id: Optional[int]
    payment_type_id: Optional[int]
    payment_mode_id: Optional[int]
    from_payment_mode_id: Optional[int]
    to_payment_mode_id: Optional[int]
    payment_amount: Optional[float]
    component_a: Optional[float]
    component_b: Optional[float]
    received_amount: Optional[float]
    transfer_amount: Optional[float]
    opening_balance: float
    current_balance: float
    status: LedgerStatus
    rejection_reason: Optional[str]
    created_by_id: int
    approved_by_id: Optional[int]
    approved_at: Optional[datetime]
    edit_request_status: Optional[LedgerStatus]
    edit_request_reason: Optional[str]
    edit_request_data: Optional[Dict[str, Any]]
    edit_requested_by_id: Optional[int]
    edit_requested_at: Optional[datetime]
    edit_approval_reason: Optional[str]
    edit_approved_by_id: Optional[int]
    edit_approved_at: Optional[datetime]
    edit_count: int
    is_deleted: bool
    deleted_at: Optional[datetime]
    deleted_reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LedgerAuditLogResponse(BaseModel):
    """Schema for one audit row."""
    id: int
    ledger_entry_id: int
    action: LedgerAuditAction
    previous_data: Optional[Dict[str, Any]]
    new_data: Optional[Dict[str, Any]]
    reason: Optional[str]
    performed_by_id: int
    performed_at: datetime

    class Config:
        from_attributes = True


class LedgerEntryDetail(LedgerEntryResponse):
    """Entry plus its audit trail, newest first."""
    audit_logs: List[LedgerAuditLogResponse] = []


class BulkDecisionResult(BaseModel):
    """Outcome of a bulk approve/reject."""
    approved: int = 0
    rejected: int = 0
    ids: List[int] = []
