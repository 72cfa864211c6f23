"""
Report Pydantic schemas.

Rows differ per report type, so they are passed through as plain dicts.
"""

from pydantic import BaseModel
from typing import Any, Dict, List
from finance_backend.app.schemas.masters import BalanceIntegrity


class ReportSummary(BaseModel):
    type: str
    data: List[Dict[str, Any]]
    totals: Dict[str, float]


class PaymentModeIntegrity(BalanceIntegrity):
    name: str


class IntegrityReport(BaseModel):
    all_valid: bool
    invalid_count: int
    payment_modes: List[PaymentModeIntegrity]
