"""
Finance report API endpoints.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from finance_backend.app.core.guards import require_permission, require_role
from finance_backend.app.core.permissions import Permission
from finance_backend.app.db.session import get_db
from finance_backend.app.domain.ledger.reports import ReportService
from finance_backend.app.models.enums import UserRole
from finance_backend.app.schemas.common import ApiResponse
from finance_backend.app.schemas.reports import ReportSummary, IntegrityReport

router = APIRouter(prefix="/finance/reports", tags=["Finance Reports"])


@router.get("/summary", response_model=ApiResponse[ReportSummary])
async def get_summary_report(
    report_type: str = Query("payment-mode", alias="type", description="payment-mode | party-wise | head-wise | day-wise"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user: dict = Depends(require_permission(Permission.FINANCE_READ)),
    db: AsyncSession = Depends(get_db)
):
    """Aggregate rollup of approved entries."""
    report = await ReportService.summary(db, report_type, start_date, end_date)
    return ApiResponse(data=ReportSummary(**report))


@router.get("/integrity", response_model=ApiResponse[IntegrityReport])
async def get_integrity_report(
    current_user: dict = Depends(require_role([UserRole.MD, UserRole.ADMIN, UserRole.FINANCE_HEAD])),
    db: AsyncSession = Depends(get_db)
):
    """
    Balance integrity check across all active payment modes.

    Diagnostic only: discrepancies are reported, never corrected.
    """
    report = await ReportService.integrity_report(db)
    message = None if report["all_valid"] else f"{report['invalid_count']} payment mode(s) out of balance"
    return ApiResponse(data=IntegrityReport(**report), message=message)
