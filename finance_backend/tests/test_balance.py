"""
Balance arithmetic, increments and integrity checks.
"""

import pytest
from sqlalchemy import update

from finance_backend.app.core.exceptions import ResourceNotFoundError
from finance_backend.app.domain.ledger.balance import (
    calculate_new_balance,
    signed_amount,
    update_payment_mode_balance,
    reverse_balance_update,
    preview_balance_impact,
    get_payment_mode_totals,
    verify_balance_integrity,
)
from finance_backend.app.domain.ledger.lifecycle import LedgerService
from finance_backend.app.models.finance_enums import TransactionType
from finance_backend.app.models.masters import PaymentMode
from finance_backend.app.schemas.ledger import LedgerEntryCreate


def test_calculate_new_balance():
    assert calculate_new_balance(100, TransactionType.CREDIT, 50) == 150
    assert calculate_new_balance(100, TransactionType.DEBIT, 50) == 50
    assert calculate_new_balance(100, TransactionType.SELF_TRANSFER, 50) == 50


def test_debit_can_overdraw():
    assert calculate_new_balance(10, TransactionType.DEBIT, 25) == -15


def test_signed_amount():
    assert signed_amount(TransactionType.CREDIT, 12.5) == 12.5
    assert signed_amount(TransactionType.DEBIT, 12.5) == -12.5


@pytest.mark.asyncio
async def test_update_and_reverse(db_session, masters, balance_of):
    assert await update_payment_mode_balance(db_session, masters.cash_id, TransactionType.CREDIT, 250) == 1250.0
    assert await update_payment_mode_balance(db_session, masters.cash_id, TransactionType.DEBIT, 50) == 1200.0
    assert await reverse_balance_update(db_session, masters.cash_id, TransactionType.DEBIT, 50) == 1250.0
    await db_session.commit()

    assert await balance_of(masters.cash_id) == 1250.0


@pytest.mark.asyncio
async def test_update_unknown_mode(db_session):
    with pytest.raises(ResourceNotFoundError):
        await update_payment_mode_balance(db_session, 4040, TransactionType.CREDIT, 10)


@pytest.mark.asyncio
async def test_preview_does_not_persist(db_session, masters, balance_of):
    preview = await preview_balance_impact(db_session, masters.bank_id, TransactionType.DEBIT, 120)

    assert preview == {"current_balance": 500.0, "projected_balance": 380.0, "impact": -120}
    assert await balance_of(masters.bank_id) == 500.0


@pytest.mark.asyncio
async def test_totals_include_self_transfers(db_session, users, masters):
    finance, admin = users["finance"], users["admin"]
    await LedgerService.create_entry(db_session, finance, LedgerEntryCreate(
        transaction_type=TransactionType.CREDIT, description="Receipt",
        party_id=masters.party_id, head_id=masters.head_id,
        payment_type_id=masters.payment_type_id, payment_mode_id=masters.cash_id,
        received_amount=400,
    ))
    debit = await LedgerService.create_entry(db_session, finance, LedgerEntryCreate(
        transaction_type=TransactionType.DEBIT, description="Supplies",
        party_id=masters.party_id, head_id=masters.head_id,
        payment_type_id=masters.payment_type_id, payment_mode_id=masters.cash_id,
        payment_amount=150,
    ))
    await LedgerService.decide_entry(db_session, admin, debit.id, "approve")
    transfer = await LedgerService.create_entry(db_session, finance, LedgerEntryCreate(
        transaction_type=TransactionType.SELF_TRANSFER, description="Deposit",
        from_payment_mode_id=masters.cash_id, to_payment_mode_id=masters.bank_id,
        transfer_amount=100,
    ))
    await LedgerService.decide_entry(db_session, admin, transfer.id, "approve")
    # Pending entries do not count
    await LedgerService.create_entry(db_session, finance, LedgerEntryCreate(
        transaction_type=TransactionType.DEBIT, description="Unapproved",
        party_id=masters.party_id, head_id=masters.head_id,
        payment_type_id=masters.payment_type_id, payment_mode_id=masters.cash_id,
        payment_amount=999,
    ))

    cash = await get_payment_mode_totals(db_session, masters.cash_id)
    bank = await get_payment_mode_totals(db_session, masters.bank_id)

    assert cash == {"total_credits": 400.0, "total_debits": 250.0, "net_change": 150.0}
    assert bank == {"total_credits": 100.0, "total_debits": 0.0, "net_change": 100.0}


@pytest.mark.asyncio
async def test_integrity_flags_tampered_balance(db_session, users, masters):
    await LedgerService.create_entry(db_session, users["finance"], LedgerEntryCreate(
        transaction_type=TransactionType.CREDIT, description="Receipt",
        party_id=masters.party_id, head_id=masters.head_id,
        payment_type_id=masters.payment_type_id, payment_mode_id=masters.cash_id,
        received_amount=75.5,
    ))
    check = await verify_balance_integrity(db_session, masters.cash_id)
    assert check["is_valid"] is True
    assert check["expected_balance"] == pytest.approx(1075.5)

    await db_session.execute(
        update(PaymentMode).where(PaymentMode.id == masters.cash_id).values(current_balance=2000.0)
    )
    await db_session.commit()

    check = await verify_balance_integrity(db_session, masters.cash_id)
    assert check["is_valid"] is False
    assert check["discrepancy"] == pytest.approx(924.5)


@pytest.mark.asyncio
async def test_integrity_unknown_mode(db_session):
    with pytest.raises(ResourceNotFoundError):
        await verify_balance_integrity(db_session, 4040)
