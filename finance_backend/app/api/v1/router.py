"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from finance_backend.app.api.v1.endpoints import auth, ledger, masters, reports

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Finance ledger and its master data
router.include_router(ledger.router)
router.include_router(masters.router)
router.include_router(reports.router)
