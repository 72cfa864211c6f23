"""
FastAPI Application Entry Point.

This is the main application file for the Hospital Finance Ledger Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from finance_backend.app.core.config import settings
from finance_backend.app.api.v1.router import router as api_v1_router
from finance_backend.app.core.observability import ObservabilityMiddleware
from finance_backend.app.core.redis_client import ping_redis
from finance_backend.app.db.session import engine, Base
from finance_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from finance_backend.app.models.user import User  # noqa: F401
from finance_backend.app.models.audit_log import AuditLog  # noqa: F401
from finance_backend.app.models.masters import PartyMaster, HeadMaster, PaymentTypeMaster, PaymentMode  # noqa: F401
from finance_backend.app.models.ledger_entry import LedgerEntry  # noqa: F401
from finance_backend.app.models.ledger_audit_log import LedgerAuditLog  # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("finance_backend")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Disposes of the engine's connection pool on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Ledger balance and approval workflow for hospital finance",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Redis only backs logout revocation, so an unreachable Redis degrades
    the status instead of failing the check.
    """
    redis_ok = await ping_redis()
    return {
        "status": "healthy" if redis_ok else "degraded",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if redis_ok else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Hospital Finance Ledger API",
        "docs": "/docs",
        "health": "/health",
    }
