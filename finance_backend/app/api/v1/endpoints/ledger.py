"""
Ledger API endpoints.

Thin HTTP layer over LedgerService: permission guard, request parsing,
response envelope. Business rules live in domain/ledger/lifecycle.py.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from finance_backend.app.core.config import settings
from finance_backend.app.core.guards import require_permission
from finance_backend.app.core.permissions import Permission
from finance_backend.app.db.session import get_db
from finance_backend.app.domain.ledger.lifecycle import LedgerService
from finance_backend.app.models.finance_enums import TransactionType, LedgerStatus
from finance_backend.app.schemas.common import ApiResponse, Page, Pagination
from finance_backend.app.schemas.ledger import (
    LedgerEntryCreate,
    LedgerEntryUpdate,
    LedgerEntryResponse,
    LedgerEntryDetail,
    LedgerAuditLogResponse,
    LedgerDecision,
    BulkLedgerDecision,
    BulkDecisionResult,
    EditRequestCreate,
    EditDecision,
    DeleteRequest,
)

router = APIRouter(prefix="/finance/ledger", tags=["Finance Ledger"])

can_read = require_permission(Permission.FINANCE_READ)
can_write = require_permission(Permission.FINANCE_WRITE)
can_approve = require_permission(Permission.FINANCE_APPROVE)


@router.get("", response_model=ApiResponse[Page[LedgerEntryResponse]])
async def list_ledger_entries(
    transaction_type: Optional[TransactionType] = Query(None),
    status_filter: Optional[LedgerStatus] = Query(None, alias="status"),
    edit_request_status: Optional[LedgerStatus] = Query(None),
    party_id: Optional[int] = Query(None),
    head_id: Optional[int] = Query(None),
    payment_mode_id: Optional[int] = Query(None),
    payment_type_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None, description="Inclusive, whole day (UTC)"),
    end_date: Optional[date] = Query(None, description="Inclusive, whole day (UTC)"),
    search: Optional[str] = Query(None, description="Serial number, description or party name"),
    component_filter: str = Query("all", description="all | aOnly | bOnly | both"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(settings.ledger_page_size, ge=1, le=200, description="Items per page"),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """List ledger entries (deleted entries excluded), newest first."""
    entries, total = await LedgerService.list_entries(
        db,
        transaction_type=transaction_type,
        status=status_filter,
        edit_request_status=edit_request_status,
        party_id=party_id,
        head_id=head_id,
        payment_mode_id=payment_mode_id,
        payment_type_id=payment_type_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        component_filter=component_filter,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=Page(
        items=[LedgerEntryResponse.model_validate(entry) for entry in entries],
        pagination=Pagination.build(page, limit, total),
    ))


@router.post("", response_model=ApiResponse[LedgerEntryResponse], status_code=status.HTTP_201_CREATED)
async def create_ledger_entry(
    entry_data: LedgerEntryCreate,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a ledger entry.

    Credits are approved immediately; debits and self transfers wait for
    approval.
    """
    entry = await LedgerService.create_entry(db, current_user, entry_data)
    message = (
        "Entry created and approved"
        if entry.status == LedgerStatus.APPROVED
        else "Entry created, pending approval"
    )
    return ApiResponse(data=LedgerEntryResponse.model_validate(entry), message=message)


@router.post("/bulk-approve", response_model=ApiResponse[BulkDecisionResult])
async def bulk_decide_ledger_entries(
    decision: BulkLedgerDecision,
    current_user: dict = Depends(can_approve),
    db: AsyncSession = Depends(get_db)
):
    """Approve or reject several pending entries; all succeed or none do."""
    result = await LedgerService.bulk_decide(
        db, current_user, decision.ids, decision.action, decision.rejection_reason
    )
    return ApiResponse(data=BulkDecisionResult(**result))


@router.get("/{entry_id}", response_model=ApiResponse[LedgerEntryDetail])
async def get_ledger_entry(
    entry_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Entry detail with its audit trail."""
    entry, audit_logs = await LedgerService.get_entry(db, entry_id)
    detail = LedgerEntryDetail.model_validate(entry)
    detail.audit_logs = [LedgerAuditLogResponse.model_validate(log) for log in audit_logs]
    return ApiResponse(data=detail)


@router.patch("/{entry_id}", response_model=ApiResponse[LedgerEntryResponse])
async def update_ledger_entry(
    entry_id: int,
    entry_data: LedgerEntryUpdate,
    current_user: dict = Depends(can_approve),
    db: AsyncSession = Depends(get_db)
):
    """Update descriptive fields of an entry that has not been approved."""
    entry = await LedgerService.update_pending_entry(db, current_user, entry_id, entry_data)
    return ApiResponse(data=LedgerEntryResponse.model_validate(entry), message="Entry updated")


@router.delete("/{entry_id}", response_model=ApiResponse[LedgerEntryResponse])
async def delete_ledger_entry(
    entry_id: int,
    delete_data: DeleteRequest,
    current_user: dict = Depends(can_approve),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete an entry. Balances are not reversed."""
    entry = await LedgerService.soft_delete(db, current_user, entry_id, delete_data.reason)
    return ApiResponse(data=LedgerEntryResponse.model_validate(entry), message="Entry deleted")


@router.post("/{entry_id}/approve", response_model=ApiResponse[LedgerEntryResponse])
async def decide_ledger_entry(
    entry_id: int,
    decision: LedgerDecision,
    current_user: dict = Depends(can_approve),
    db: AsyncSession = Depends(get_db)
):
    """Approve or reject a pending debit or self transfer."""
    entry = await LedgerService.decide_entry(
        db, current_user, entry_id, decision.action, decision.rejection_reason
    )
    message = "Entry approved" if decision.action == "approve" else "Entry rejected"
    return ApiResponse(data=LedgerEntryResponse.model_validate(entry), message=message)


@router.post("/{entry_id}/request-edit", response_model=ApiResponse[LedgerEntryResponse])
async def request_ledger_edit(
    entry_id: int,
    edit_data: EditRequestCreate,
    current_user: dict = Depends(can_write),
    db: AsyncSession = Depends(get_db)
):
    """Propose changes to an approved entry."""
    entry = await LedgerService.request_edit(
        db, current_user, entry_id, edit_data.reason, edit_data.changes
    )
    return ApiResponse(data=LedgerEntryResponse.model_validate(entry), message="Edit request submitted")


@router.post("/{entry_id}/approve-edit", response_model=ApiResponse[LedgerEntryResponse])
async def approve_ledger_edit(
    entry_id: int,
    decision: Optional[EditDecision] = None,
    current_user: dict = Depends(can_approve),
    db: AsyncSession = Depends(get_db)
):
    """
    Apply a pending edit request.

    Payment-mode balances are not recalculated for amount changes unless the
    rebalance-on-edit setting is enabled.
    """
    reason = decision.reason if decision else None
    entry = await LedgerService.approve_edit(db, current_user, entry_id, reason)
    return ApiResponse(data=LedgerEntryResponse.model_validate(entry), message="Edit request approved")


@router.post("/{entry_id}/reject-edit", response_model=ApiResponse[LedgerEntryResponse])
async def reject_ledger_edit(
    entry_id: int,
    decision: Optional[EditDecision] = None,
    current_user: dict = Depends(can_approve),
    db: AsyncSession = Depends(get_db)
):
    reason = decision.reason if decision else None
    entry = await LedgerService.reject_edit(db, current_user, entry_id, reason)
    return ApiResponse(data=LedgerEntryResponse.model_validate(entry), message="Edit request rejected")


@router.post("/{entry_id}/undo", response_model=ApiResponse[LedgerEntryResponse])
async def undo_ledger_decision(
    entry_id: int,
    current_user: dict = Depends(can_approve),
    db: AsyncSession = Depends(get_db)
):
    """Undo the caller's own most recent decision on this entry."""
    entry = await LedgerService.undo(db, current_user, entry_id)
    return ApiResponse(data=LedgerEntryResponse.model_validate(entry), message="Action undone")
