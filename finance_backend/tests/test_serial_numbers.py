"""
Serial number formatting, parsing and generation.
"""

from datetime import datetime, timezone

import pytest

from finance_backend.app.domain.ledger.serial_numbers import (
    format_serial_number,
    next_sequence,
    parse_serial_number,
    is_valid_serial_number,
    generate_serial_number,
)
from finance_backend.app.models.finance_enums import TransactionType, LedgerStatus
from finance_backend.app.models.ledger_entry import LedgerEntry


@pytest.mark.parametrize("transaction_type, number, expected", [
    (TransactionType.CREDIT, 1, "CR-0001"),
    (TransactionType.DEBIT, 42, "DR-0042"),
    (TransactionType.SELF_TRANSFER, 9999, "ST-9999"),
    (TransactionType.DEBIT, 10000, "DR-10000"),
])
def test_format_serial_number(transaction_type, number, expected):
    assert format_serial_number(transaction_type, number) == expected


def test_next_sequence():
    assert next_sequence(None) == 1
    assert next_sequence("") == 1
    assert next_sequence("legacy") == 1
    assert next_sequence("CR-0009") == 10
    assert next_sequence("DR-9999") == 10000


def test_parse_serial_number():
    assert parse_serial_number("ST-0012") == (TransactionType.SELF_TRANSFER, 12)
    assert parse_serial_number("DR-10000") == (TransactionType.DEBIT, 10000)
    assert parse_serial_number("XX-0001") == (None, 0)
    assert parse_serial_number("CR-12") == (None, 0)
    assert parse_serial_number(None) == (None, 0)


def test_is_valid_serial_number():
    assert is_valid_serial_number("CR-0001")
    assert not is_valid_serial_number("cr-0001")
    assert not is_valid_serial_number("CR-0001 ")


async def _insert(db, user_id, transaction_type, serial_number):
    db.add(LedgerEntry(
        serial_number=serial_number,
        transaction_type=transaction_type,
        transaction_date=datetime.now(timezone.utc),
        description="Imported",
        opening_balance=0.0,
        current_balance=0.0,
        status=LedgerStatus.PENDING,
        created_by_id=user_id,
    ))
    await db.commit()


@pytest.mark.asyncio
async def test_generate_starts_each_type_at_one(db_session):
    assert await generate_serial_number(db_session, TransactionType.CREDIT) == "CR-0001"
    assert await generate_serial_number(db_session, TransactionType.DEBIT) == "DR-0001"
    assert await generate_serial_number(db_session, TransactionType.SELF_TRANSFER) == "ST-0001"


@pytest.mark.asyncio
async def test_generate_continues_per_type(db_session, users):
    user_id = users["finance"]["user_id"]
    await _insert(db_session, user_id, TransactionType.DEBIT, "DR-0007")
    await _insert(db_session, user_id, TransactionType.CREDIT, "CR-0002")

    assert await generate_serial_number(db_session, TransactionType.DEBIT) == "DR-0008"
    assert await generate_serial_number(db_session, TransactionType.CREDIT) == "CR-0003"


@pytest.mark.asyncio
async def test_generate_rolls_past_four_digits(db_session, users):
    user_id = users["finance"]["user_id"]
    await _insert(db_session, user_id, TransactionType.DEBIT, "DR-9999")
    assert await generate_serial_number(db_session, TransactionType.DEBIT) == "DR-10000"

    await _insert(db_session, user_id, TransactionType.DEBIT, "DR-10000")
    assert await generate_serial_number(db_session, TransactionType.DEBIT) == "DR-10001"
