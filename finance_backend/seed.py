"""
Database seeding script for development data.

Creates one user per finance-relevant role plus a minimal set of finance
masters. Safe to run repeatedly: existing rows (matched by username or
name) are left alone.

Usage:
    python -m finance_backend.seed
"""

import asyncio
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_backend.app.core.security import get_password_hash
from finance_backend.app.db.session import AsyncSessionLocal, engine, Base
from finance_backend.app.models.enums import UserRole
from finance_backend.app.models.finance_enums import FinancePaymentType, PartyType
from finance_backend.app.models.masters import PartyMaster, HeadMaster, PaymentTypeMaster, PaymentMode
from finance_backend.app.models.user import User
from finance_backend.app.models.audit_log import AuditLog  # noqa: F401
from finance_backend.app.models.ledger_entry import LedgerEntry  # noqa: F401
from finance_backend.app.models.ledger_audit_log import LedgerAuditLog  # noqa: F401

# username, role, password
SEED_USERS = (
    ("admin", UserRole.ADMIN, "admin123"),
    ("md", UserRole.MD, "md123"),
    ("finance", UserRole.FINANCE_HEAD, "finance123"),
    ("sales", UserRole.SALES_HEAD, "sales123"),
)

SEED_HEADS = (("Pharmacy", "Operations"), ("Salaries", "HR"), ("Patient Receipts", "Billing"))
SEED_PAYMENT_TYPES = (("Operating Expense", FinancePaymentType.EXPENSE), ("Collection", FinancePaymentType.NON_EXPENSE))
SEED_PAYMENT_MODES = (("Cash", 0.0), ("Bank", 0.0))
SEED_PARTIES = (("General Supplier", PartyType.SUPPLIER), ("Walk-in Patient", PartyType.CLIENT))


async def _exists(db: AsyncSession, column, value) -> bool:
    return (await db.execute(select(column).where(column == value))).first() is not None


async def seed(db: AsyncSession) -> Dict[str, int]:
    """
    Insert any missing seed rows.

    Returns:
        Number of rows created per kind
    """
    created = {"users": 0, "heads": 0, "payment_types": 0, "payment_modes": 0, "parties": 0}

    for username, role, password in SEED_USERS:
        if await _exists(db, User.username, username):
            continue
        db.add(User(
            email=f"{username}@hospital.local",
            username=username,
            name=username.capitalize(),
            hashed_password=get_password_hash(password),
            role=role,
            is_active=True,
        ))
        created["users"] += 1
        print(f"✅ Created {role.value} user (username: {username}, password: {password})")

    for name, department in SEED_HEADS:
        if not await _exists(db, HeadMaster.name, name):
            db.add(HeadMaster(name=name, department=department, is_active=True))
            created["heads"] += 1

    for name, payment_type in SEED_PAYMENT_TYPES:
        if not await _exists(db, PaymentTypeMaster.name, name):
            db.add(PaymentTypeMaster(name=name, payment_type=payment_type, is_active=True))
            created["payment_types"] += 1

    for name, opening_balance in SEED_PAYMENT_MODES:
        if not await _exists(db, PaymentMode.name, name):
            db.add(PaymentMode(
                name=name, opening_balance=opening_balance, current_balance=opening_balance, is_active=True
            ))
            created["payment_modes"] += 1

    for name, party_type in SEED_PARTIES:
        if not await _exists(db, PartyMaster.name, name):
            db.add(PartyMaster(name=name, party_type=party_type, is_active=True))
            created["parties"] += 1

    await db.commit()
    return created


async def main():
    print("🌱 Starting seeding...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        created = await seed(db)

    await engine.dispose()
    print(f"\n🎉 Seeding completed: {created}")


if __name__ == "__main__":
    asyncio.run(main())
