"""
Serial number generation for ledger entries.

Format: CR-0001 for credits, DR-0001 for debits, ST-0001 for self transfers.
The sequence grows past four digits once it exceeds 9999.
"""

import re
from typing import Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from finance_backend.app.models.finance_enums import TransactionType
from finance_backend.app.models.ledger_entry import LedgerEntry

SERIAL_PREFIX = {
    TransactionType.CREDIT: "CR",
    TransactionType.DEBIT: "DR",
    TransactionType.SELF_TRANSFER: "ST",
}
PREFIX_TYPE = {prefix: tx_type for tx_type, prefix in SERIAL_PREFIX.items()}

SERIAL_PATTERN = re.compile(r"^(CR|DR|ST)-(\d{4,})$")
TRAILING_DIGITS = re.compile(r"\d+$")
MIN_DIGITS = 4


def format_serial_number(transaction_type: TransactionType, number: int) -> str:
    """Render a sequence number in the namespace of a transaction type."""
    return f"{SERIAL_PREFIX[transaction_type]}-{str(number).zfill(MIN_DIGITS)}"


def next_sequence(last_serial: Optional[str]) -> int:
    """Sequence number following `last_serial` (1 when there is none)."""
    if not last_serial:
        return 1
    match = TRAILING_DIGITS.search(last_serial)
    if not match:
        return 1
    return int(match.group(0)) + 1


async def generate_serial_number(db: AsyncSession, transaction_type: TransactionType) -> str:
    """
    Generate the next serial number for a transaction type.

    Reads the highest existing serial of the type (soft-deleted entries
    included, so numbers are never reused) and increments it. Ordering by
    length first keeps DR-10000 above DR-9999.

    Two concurrent callers can compute the same serial; the unique
    constraint on `serial_number` rejects the second insert.
    """
    query = (
        select(LedgerEntry.serial_number)
        .where(LedgerEntry.transaction_type == transaction_type)
        .order_by(func.length(LedgerEntry.serial_number).desc(), LedgerEntry.serial_number.desc())
        .limit(1)
    )
    last_serial = (await db.execute(query)).scalar_one_or_none()

    return format_serial_number(transaction_type, next_sequence(last_serial))


def parse_serial_number(serial_number: str) -> Tuple[Optional[TransactionType], int]:
    """
    Split a serial into its transaction type and number.

    Returns (None, 0) for anything that is not a valid serial.
    """
    match = SERIAL_PATTERN.match(serial_number or "")
    if not match:
        return None, 0
    prefix, digits = match.groups()
    return PREFIX_TYPE[prefix], int(digits)


def is_valid_serial_number(serial_number: str) -> bool:
    return bool(SERIAL_PATTERN.match(serial_number or ""))
