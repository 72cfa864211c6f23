"""
Development seed data.
"""

import pytest
from sqlalchemy import select, func

from finance_backend.seed import seed, SEED_USERS
from finance_backend.app.models.masters import PaymentMode
from finance_backend.app.models.user import User


@pytest.mark.asyncio
async def test_seed_is_idempotent(db_session, mocker):
    mocker.patch("finance_backend.seed.get_password_hash", return_value="hashed")

    first = await seed(db_session)
    assert first == {"users": 4, "heads": 3, "payment_types": 2, "payment_modes": 2, "parties": 2}

    second = await seed(db_session)
    assert second == {"users": 0, "heads": 0, "payment_types": 0, "payment_modes": 0, "parties": 0}

    user_count = (await db_session.execute(select(func.count(User.id)))).scalar_one()
    assert user_count == len(SEED_USERS)


@pytest.mark.asyncio
async def test_seed_keeps_existing_rows(db_session, users, masters, mocker):
    """Fixture users and the Cash/Bank modes already exist and are not touched."""
    mocker.patch("finance_backend.seed.get_password_hash", return_value="hashed")

    created = await seed(db_session)

    assert created["users"] == 0
    assert created["payment_modes"] == 0
    result = await db_session.execute(select(PaymentMode.current_balance).where(PaymentMode.name == "Cash"))
    assert result.scalar_one() == 1000.0
