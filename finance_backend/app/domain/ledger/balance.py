"""
Balance Calculator.

Pure arithmetic over (balance, transaction type, amount) plus the small set
of queries that read or move a payment mode's stored balance.

Balance writes are SQL increments (`current_balance = current_balance + x`)
issued inside the caller's transaction; they never commit on their own.
"""

from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from finance_backend.app.core.config import settings
from finance_backend.app.core.exceptions import ResourceNotFoundError
from finance_backend.app.models.finance_enums import TransactionType, LedgerStatus
from finance_backend.app.models.ledger_entry import LedgerEntry
from finance_backend.app.models.masters import PaymentMode


def signed_amount(transaction_type: TransactionType, amount: float) -> float:
    """+amount for credits, -amount for everything that takes money out."""
    return amount if transaction_type == TransactionType.CREDIT else -amount


def calculate_new_balance(current_balance: float, transaction_type: TransactionType, amount: float) -> float:
    """
    Calculate the new balance after a transaction.

    >>> calculate_new_balance(100, TransactionType.CREDIT, 50)
    150
    >>> calculate_new_balance(100, TransactionType.DEBIT, 50)
    50
    """
    return current_balance + signed_amount(transaction_type, amount)


async def get_payment_mode_balance(db: AsyncSession, payment_mode_id: int) -> float:
    """Stored running balance of a payment mode (0.0 if it does not exist)."""
    result = await db.execute(
        select(PaymentMode.current_balance).where(PaymentMode.id == payment_mode_id)
    )
    balance = result.scalar_one_or_none()
    return balance if balance is not None else 0.0


async def _increment_balance(db: AsyncSession, payment_mode_id: int, increment: float) -> float:
    stmt = (
        update(PaymentMode)
        .where(PaymentMode.id == payment_mode_id)
        .values(current_balance=PaymentMode.current_balance + increment)
        .returning(PaymentMode.current_balance)
        .execution_options(synchronize_session="fetch")
    )
    new_balance = (await db.execute(stmt)).scalar_one_or_none()
    if new_balance is None:
        raise ResourceNotFoundError("Payment mode", payment_mode_id)
    return new_balance


async def update_payment_mode_balance(
    db: AsyncSession,
    payment_mode_id: int,
    transaction_type: TransactionType,
    amount: float
) -> float:
    """
    Apply an approved transaction to a payment mode's balance.

    Returns:
        The balance after the increment
    """
    return await _increment_balance(db, payment_mode_id, signed_amount(transaction_type, amount))


async def reverse_balance_update(
    db: AsyncSession,
    payment_mode_id: int,
    transaction_type: TransactionType,
    amount: float
) -> float:
    """
    Undo a previously applied transaction (used by undo).

    Returns:
        The balance after the reversal
    """
    return await _increment_balance(db, payment_mode_id, -signed_amount(transaction_type, amount))


async def preview_balance_impact(
    db: AsyncSession,
    payment_mode_id: int,
    transaction_type: TransactionType,
    amount: float
) -> Dict[str, float]:
    """Projected balance for a transaction, without persisting anything."""
    current_balance = await get_payment_mode_balance(db, payment_mode_id)
    impact = signed_amount(transaction_type, amount)
    return {
        "current_balance": current_balance,
        "projected_balance": current_balance + impact,
        "impact": impact,
    }


def _date_window(column, start: Optional[datetime], end: Optional[datetime]) -> list:
    conditions = []
    if start is not None:
        conditions.append(column >= start)
    if end is not None:
        conditions.append(column <= end)
    return conditions


async def get_payment_mode_totals(
    db: AsyncSession,
    payment_mode_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Dict[str, float]:
    """
    Sum approved money in and out of a payment mode from the entries table.

    Credits: CREDIT received amounts + incoming self transfers.
    Debits: DEBIT payment amounts + outgoing self transfers.
    Independent of the stored running balance.
    """
    approved = [LedgerEntry.status == LedgerStatus.APPROVED]
    approved += _date_window(LedgerEntry.transaction_date, start, end)

    credits_query = select(
        func.coalesce(func.sum(LedgerEntry.received_amount), 0.0)
    ).where(
        LedgerEntry.payment_mode_id == payment_mode_id,
        LedgerEntry.transaction_type == TransactionType.CREDIT,
        *approved
    )
    debits_query = select(
        func.coalesce(func.sum(LedgerEntry.payment_amount), 0.0)
    ).where(
        LedgerEntry.payment_mode_id == payment_mode_id,
        LedgerEntry.transaction_type == TransactionType.DEBIT,
        *approved
    )
    transfers_in_query = select(
        func.coalesce(func.sum(LedgerEntry.transfer_amount), 0.0)
    ).where(
        LedgerEntry.to_payment_mode_id == payment_mode_id,
        LedgerEntry.transaction_type == TransactionType.SELF_TRANSFER,
        *approved
    )
    transfers_out_query = select(
        func.coalesce(func.sum(LedgerEntry.transfer_amount), 0.0)
    ).where(
        LedgerEntry.from_payment_mode_id == payment_mode_id,
        LedgerEntry.transaction_type == TransactionType.SELF_TRANSFER,
        *approved
    )

    total_credits = float((await db.execute(credits_query)).scalar() or 0.0)
    total_credits += float((await db.execute(transfers_in_query)).scalar() or 0.0)
    total_debits = float((await db.execute(debits_query)).scalar() or 0.0)
    total_debits += float((await db.execute(transfers_out_query)).scalar() or 0.0)

    return {
        "total_credits": total_credits,
        "total_debits": total_debits,
        "net_change": total_credits - total_debits,
    }


async def verify_balance_integrity(db: AsyncSession, payment_mode_id: int) -> Dict[str, object]:
    """
    Recompute a payment mode's balance from history and compare it with the
    stored running balance.

    Diagnostic only: nothing is corrected and nothing blocks writes.

    Raises:
        ResourceNotFoundError: if the payment mode does not exist
    """
    result = await db.execute(
        select(PaymentMode.opening_balance, PaymentMode.current_balance)
        .where(PaymentMode.id == payment_mode_id)
    )
    row = result.one_or_none()
    if row is None:
        raise ResourceNotFoundError("Payment mode", payment_mode_id)

    opening_balance, current_balance = row
    totals = await get_payment_mode_totals(db, payment_mode_id)
    expected_balance = opening_balance + totals["total_credits"] - totals["total_debits"]
    discrepancy = current_balance - expected_balance

    return {
        "payment_mode_id": payment_mode_id,
        "is_valid": abs(discrepancy) < settings.ledger_balance_tolerance,
        "current_balance": current_balance,
        "expected_balance": expected_balance,
        "discrepancy": discrepancy,
    }
