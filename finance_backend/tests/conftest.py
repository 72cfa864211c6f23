"""
Centralized Test Configuration.

Every test gets a fresh in-memory SQLite database (one engine per test, so
no connection outlives its event loop) and an in-memory Redis stand-in
patched over the real client.
"""

from types import SimpleNamespace

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from finance_backend.app.main import app
from finance_backend.app.db.session import get_db, Base
from finance_backend.app.core.jwt import create_access_token
from finance_backend.app.core.security import get_password_hash
from finance_backend.app.domain.ledger.balance import get_payment_mode_balance
from finance_backend.app.models.enums import UserRole
from finance_backend.app.models.finance_enums import PartyType, FinancePaymentType
from finance_backend.app.models.masters import PartyMaster, HeadMaster, PaymentTypeMaster, PaymentMode
from finance_backend.app.models.user import User
import finance_backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "secret123"
# bcrypt is slow on purpose; hash once for every fixture user
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("Redis unavailable")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value
        return True

    async def delete(self, key):
        self._check()
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        self._check()
        return 1 if key in self.store else 0


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, mock_redis, monkeypatch):
    """Route the app's DB sessions and Redis client to the test doubles."""
    monkeypatch.setattr(redis_client_module, "redis_client", mock_redis)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation and service-level tests
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


def _actor(user: User) -> dict:
    """The dict get_current_user would hand to a route, plus ready-made headers."""
    token = create_access_token(data={
        "sub": user.username,
        "user_id": user.id,
        "role": user.role.value,
        "team_id": user.team_id,
    })
    return {
        "user_id": user.id,
        "sub": user.username,
        "role": user.role.value,
        "team_id": user.team_id,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest.fixture
async def users(db_session):
    """One user per role the finance workflow cares about, keyed by role name."""
    created = {}
    for key, role in (
        ("admin", UserRole.ADMIN),
        ("admin2", UserRole.ADMIN),
        ("md", UserRole.MD),
        ("finance", UserRole.FINANCE_HEAD),
        ("sales", UserRole.SALES_HEAD),
    ):
        user = User(
            email=f"{key}@test.com",
            username=key,
            name=key.capitalize(),
            hashed_password=TEST_PASSWORD_HASH,
            role=role,
            is_active=True,
        )
        db_session.add(user)
        created[key] = user
    await db_session.commit()
    return {key: _actor(user) for key, user in created.items()}


@pytest.fixture
async def masters(db_session):
    """
    A minimal set of active masters plus one inactive party.

    Returned as plain ids so tests never touch ORM attributes after a
    rolled-back operation.
    """
    party = PartyMaster(name="Acme Pharma", party_type=PartyType.SUPPLIER, is_active=True)
    other_party = PartyMaster(name="City Clinic", party_type=PartyType.CLIENT, is_active=True)
    inactive_party = PartyMaster(name="Closed Vendor", party_type=PartyType.VENDOR, is_active=False)
    head = HeadMaster(name="Pharmacy", department="Operations", is_active=True)
    other_head = HeadMaster(name="Salaries", department="HR", is_active=True)
    payment_type = PaymentTypeMaster(name="Operating", payment_type=FinancePaymentType.EXPENSE, is_active=True)
    cash = PaymentMode(name="Cash", opening_balance=1000.0, current_balance=1000.0, is_active=True)
    bank = PaymentMode(name="Bank", opening_balance=500.0, current_balance=500.0, is_active=True)
    inactive_mode = PaymentMode(name="Old Account", opening_balance=0.0, current_balance=0.0, is_active=False)

    db_session.add_all([
        party, other_party, inactive_party, head, other_head, payment_type, cash, bank, inactive_mode
    ])
    await db_session.commit()

    return SimpleNamespace(
        party_id=party.id,
        other_party_id=other_party.id,
        inactive_party_id=inactive_party.id,
        head_id=head.id,
        other_head_id=other_head.id,
        payment_type_id=payment_type.id,
        cash_id=cash.id,
        bank_id=bank.id,
        inactive_mode_id=inactive_mode.id,
    )


@pytest.fixture
def balance_of(db_session):
    """Read a payment mode's stored balance straight from the database."""
    async def _balance(mode_id: int) -> float:
        return await get_payment_mode_balance(db_session, mode_id)
    return _balance
