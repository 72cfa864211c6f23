"""
Finance master data API endpoints.

Parties, heads, payment types and payment modes. Masters are deactivated,
never deleted; ledger entries may only reference active ones.
"""

from typing import Optional, Type

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from finance_backend.app.core.exceptions import ValidationFailedError, ResourceNotFoundError
from finance_backend.app.core.guards import require_permission
from finance_backend.app.core.permissions import Permission
from finance_backend.app.db.session import get_db, Base
from finance_backend.app.domain.ledger.balance import (
    get_payment_mode_totals,
    preview_balance_impact,
    verify_balance_integrity,
)
from finance_backend.app.models.finance_enums import TransactionType, PartyType, FinancePaymentType
from finance_backend.app.models.masters import PartyMaster, HeadMaster, PaymentTypeMaster, PaymentMode
from finance_backend.app.schemas.common import ApiResponse, Page, Pagination
from finance_backend.app.schemas.masters import (
    PartyCreate, PartyUpdate, PartyResponse,
    HeadCreate, HeadUpdate, HeadResponse,
    PaymentTypeCreate, PaymentTypeUpdate, PaymentTypeResponse,
    PaymentModeCreate, PaymentModeUpdate, PaymentModeResponse, PaymentModeDetail, PaymentModeTotals,
    BalancePreview, BalanceIntegrity,
)

router = APIRouter(prefix="/finance", tags=["Finance Masters"])

can_read = require_permission(Permission.FINANCE_READ)
can_write_masters = require_permission(Permission.FINANCE_MASTERS_WRITE)


async def _get_or_404(db: AsyncSession, model: Type[Base], record_id: int, label: str):
    record = await db.get(model, record_id)
    if record is None:
        raise ResourceNotFoundError(label, record_id)
    return record


async def _ensure_unique_name(
    db: AsyncSession, model: Type[Base], name: str, label: str, exclude_id: Optional[int] = None
) -> None:
    query = select(model.id).where(func.lower(model.name) == name.strip().lower())
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ValidationFailedError(f"{label} '{name}' already exists", details={"name": name})


async def _list(
    db: AsyncSession, model: Type[Base], is_active: Optional[bool], search: Optional[str],
    page: int, limit: int, *conditions
):
    query = select(model).where(*conditions)
    if is_active is not None:
        query = query.where(model.is_active.is_(is_active))
    if search:
        query = query.where(model.name.ilike(f"%{search.strip()}%"))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(model.name).offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total


async def _save(db: AsyncSession, record):
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


def _apply(record, changes: dict) -> None:
    for field, value in changes.items():
        setattr(record, field, value.strip() if field == "name" and isinstance(value, str) else value)


# Parties

@router.get("/parties", response_model=ApiResponse[Page[PartyResponse]])
async def list_parties(
    is_active: Optional[bool] = Query(None),
    party_type: Optional[PartyType] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    conditions = [PartyMaster.party_type == party_type] if party_type else []
    parties, total = await _list(db, PartyMaster, is_active, search, page, limit, *conditions)
    return ApiResponse(data=Page(
        items=[PartyResponse.model_validate(party) for party in parties],
        pagination=Pagination.build(page, limit, total),
    ))


@router.post("/parties", response_model=ApiResponse[PartyResponse], status_code=status.HTTP_201_CREATED)
async def create_party(
    party_data: PartyCreate,
    current_user: dict = Depends(can_write_masters),
    db: AsyncSession = Depends(get_db)
):
    party = PartyMaster(is_active=True)
    _apply(party, party_data.model_dump())
    party = await _save(db, party)
    return ApiResponse(data=PartyResponse.model_validate(party), message="Party created")


@router.get("/parties/{party_id}", response_model=ApiResponse[PartyResponse])
async def get_party(
    party_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    party = await _get_or_404(db, PartyMaster, party_id, "Party")
    return ApiResponse(data=PartyResponse.model_validate(party))


@router.patch("/parties/{party_id}", response_model=ApiResponse[PartyResponse])
async def update_party(
    party_id: int,
    party_data: PartyUpdate,
    current_user: dict = Depends(can_write_masters),
    db: AsyncSession = Depends(get_db)
):
    party = await _get_or_404(db, PartyMaster, party_id, "Party")
    _apply(party, party_data.model_dump(exclude_unset=True))
    party = await _save(db, party)
    return ApiResponse(data=PartyResponse.model_validate(party), message="Party updated")


# Heads

@router.get("/heads", response_model=ApiResponse[Page[HeadResponse]])
async def list_heads(
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    heads, total = await _list(db, HeadMaster, is_active, search, page, limit)
    return ApiResponse(data=Page(
        items=[HeadResponse.model_validate(head) for head in heads],
        pagination=Pagination.build(page, limit, total),
    ))


@router.post("/heads", response_model=ApiResponse[HeadResponse], status_code=status.HTTP_201_CREATED)
async def create_head(
    head_data: HeadCreate,
    current_user: dict = Depends(can_write_masters),
    db: AsyncSession = Depends(get_db)
):
    await _ensure_unique_name(db, HeadMaster, head_data.name, "Head")
    head = HeadMaster(is_active=True)
    _apply(head, head_data.model_dump())
    head = await _save(db, head)
    return ApiResponse(data=HeadResponse.model_validate(head), message="Head created")


@router.get("/heads/{head_id}", response_model=ApiResponse[HeadResponse])
async def get_head(
    head_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    head = await _get_or_404(db, HeadMaster, head_id, "Head")
    return ApiResponse(data=HeadResponse.model_validate(head))


@router.patch("/heads/{head_id}", response_model=ApiResponse[HeadResponse])
async def update_head(
    head_id: int,
    head_data: HeadUpdate,
    current_user: dict = Depends(can_write_masters),
    db: AsyncSession = Depends(get_db)
):
    head = await _get_or_404(db, HeadMaster, head_id, "Head")
    changes = head_data.model_dump(exclude_unset=True)
    if changes.get("name"):
        await _ensure_unique_name(db, HeadMaster, changes["name"], "Head", exclude_id=head_id)
    _apply(head, changes)
    head = await _save(db, head)
    return ApiResponse(data=HeadResponse.model_validate(head), message="Head updated")


# Payment types

@router.get("/payment-types", response_model=ApiResponse[Page[PaymentTypeResponse]])
async def list_payment_types(
    is_active: Optional[bool] = Query(None),
    payment_type: Optional[FinancePaymentType] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    conditions = [PaymentTypeMaster.payment_type == payment_type] if payment_type else []
    payment_types, total = await _list(db, PaymentTypeMaster, is_active, search, page, limit, *conditions)
    return ApiResponse(data=Page(
        items=[PaymentTypeResponse.model_validate(item) for item in payment_types],
        pagination=Pagination.build(page, limit, total),
    ))


@router.post("/payment-types", response_model=ApiResponse[PaymentTypeResponse], status_code=status.HTTP_201_CREATED)
async def create_payment_type(
    type_data: PaymentTypeCreate,
    current_user: dict = Depends(can_write_masters),
    db: AsyncSession = Depends(get_db)
):
    await _ensure_unique_name(db, PaymentTypeMaster, type_data.name, "Payment type")
    payment_type = PaymentTypeMaster(is_active=True)
    _apply(payment_type, type_data.model_dump())
    payment_type = await _save(db, payment_type)
    return ApiResponse(data=PaymentTypeResponse.model_validate(payment_type), message="Payment type created")


@router.get("/payment-types/{type_id}", response_model=ApiResponse[PaymentTypeResponse])
async def get_payment_type(
    type_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    payment_type = await _get_or_404(db, PaymentTypeMaster, type_id, "Payment type")
    return ApiResponse(data=PaymentTypeResponse.model_validate(payment_type))


@router.patch("/payment-types/{type_id}", response_model=ApiResponse[PaymentTypeResponse])
async def update_payment_type(
    type_id: int,
    type_data: PaymentTypeUpdate,
    current_user: dict = Depends(can_write_masters),
    db: AsyncSession = Depends(get_db)
):
    payment_type = await _get_or_404(db, PaymentTypeMaster, type_id, "Payment type")
    changes = type_data.model_dump(exclude_unset=True)
    if changes.get("name"):
        await _ensure_unique_name(db, PaymentTypeMaster, changes["name"], "Payment type", exclude_id=type_id)
    _apply(payment_type, changes)
    payment_type = await _save(db, payment_type)
    return ApiResponse(data=PaymentTypeResponse.model_validate(payment_type), message="Payment type updated")


# Payment modes

@router.get("/payment-modes", response_model=ApiResponse[Page[PaymentModeResponse]])
async def list_payment_modes(
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    modes, total = await _list(db, PaymentMode, is_active, search, page, limit)
    return ApiResponse(data=Page(
        items=[PaymentModeResponse.model_validate(mode) for mode in modes],
        pagination=Pagination.build(page, limit, total),
    ))


@router.post("/payment-modes", response_model=ApiResponse[PaymentModeResponse], status_code=status.HTTP_201_CREATED)
async def create_payment_mode(
    mode_data: PaymentModeCreate,
    current_user: dict = Depends(can_write_masters),
    db: AsyncSession = Depends(get_db)
):
    """Create a payment mode; its running balance starts at the opening balance."""
    await _ensure_unique_name(db, PaymentMode, mode_data.name, "Payment mode")
    opening_balance = round(mode_data.opening_balance, 2)
    mode = PaymentMode(
        name=mode_data.name.strip(),
        description=mode_data.description,
        opening_balance=opening_balance,
        current_balance=opening_balance,
        is_active=True,
    )
    mode = await _save(db, mode)
    return ApiResponse(data=PaymentModeResponse.model_validate(mode), message="Payment mode created")


@router.get("/payment-modes/{mode_id}", response_model=ApiResponse[PaymentModeDetail])
async def get_payment_mode(
    mode_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Payment mode with approved credit/debit totals from the ledger."""
    mode = await _get_or_404(db, PaymentMode, mode_id, "Payment mode")
    totals = await get_payment_mode_totals(db, mode_id)
    detail = PaymentModeDetail(
        **PaymentModeResponse.model_validate(mode).model_dump(),
        totals=PaymentModeTotals(**totals),
    )
    return ApiResponse(data=detail)


@router.patch("/payment-modes/{mode_id}", response_model=ApiResponse[PaymentModeResponse])
async def update_payment_mode(
    mode_id: int,
    mode_data: PaymentModeUpdate,
    current_user: dict = Depends(can_write_masters),
    db: AsyncSession = Depends(get_db)
):
    mode = await _get_or_404(db, PaymentMode, mode_id, "Payment mode")
    changes = mode_data.model_dump(exclude_unset=True)
    if changes.get("name"):
        await _ensure_unique_name(db, PaymentMode, changes["name"], "Payment mode", exclude_id=mode_id)
    _apply(mode, changes)
    mode = await _save(db, mode)
    return ApiResponse(data=PaymentModeResponse.model_validate(mode), message="Payment mode updated")


@router.get("/payment-modes/{mode_id}/preview", response_model=ApiResponse[BalancePreview])
async def preview_payment_mode_balance(
    mode_id: int,
    transaction_type: TransactionType = Query(...),
    amount: float = Query(..., gt=0),
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Projected balance for a transaction. Nothing is persisted."""
    await _get_or_404(db, PaymentMode, mode_id, "Payment mode")
    preview = await preview_balance_impact(db, mode_id, transaction_type, amount)
    return ApiResponse(data=BalancePreview(
        payment_mode_id=mode_id,
        transaction_type=transaction_type,
        amount=amount,
        **preview,
    ))


@router.get("/payment-modes/{mode_id}/integrity", response_model=ApiResponse[BalanceIntegrity])
async def check_payment_mode_integrity(
    mode_id: int,
    current_user: dict = Depends(can_read),
    db: AsyncSession = Depends(get_db)
):
    """Compare the stored running balance with the one recomputed from history."""
    check = await verify_balance_integrity(db, mode_id)
    return ApiResponse(data=BalanceIntegrity(**check))
