"""
Integration tests for the Authentication Flow.

Verifies Login -> Me -> Logout, token revocation, and the security audit
trail written for each attempt.
"""

import pytest
from sqlalchemy import select

from finance_backend.app.models.audit_log import AuditLog
from finance_backend.app.models.user import User
from finance_backend.app.services.audit import AuditAction, get_user_audit_history
from finance_backend.app.core.security import get_password_hash
from finance_backend.app.models.enums import UserRole

PASSWORD = "secret123"  # password of every fixture user


@pytest.mark.asyncio
async def test_login_me_flow(client, users):
    """Login by username returns a usable bearer token."""
    response = await client.post("/v1/auth/login", json={
        "username": "finance",
        "password": PASSWORD
    })
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["role"] == "FINANCE_HEAD"
    assert data["user_id"] == users["finance"]["user_id"]

    headers = {"Authorization": f"Bearer {data['access_token']}"}
    response = await client.get("/v1/auth/me", headers=headers)
    assert response.status_code == 200
    me = response.json()["data"]
    assert me["username"] == "finance"
    assert me["email"] == "finance@test.com"
    assert "hashed_password" not in me


@pytest.mark.asyncio
async def test_login_with_email(client, users):
    response = await client.post("/v1/auth/login", json={
        "username": "md@test.com",
        "password": PASSWORD
    })
    assert response.status_code == 200
    assert response.json()["data"]["role"] == "MD"


@pytest.mark.asyncio
async def test_invalid_password_is_audited(client, users, db_session):
    response = await client.post("/v1/auth/login", json={
        "username": "admin",
        "password": "wrong-password"
    })
    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Invalid credentials"

    history = await get_user_audit_history(db_session, users["admin"]["user_id"], AuditAction.LOGIN_FAILED)
    assert len(history) == 1
    assert history[0].meta_data == {"reason": "Invalid password"}


@pytest.mark.asyncio
async def test_unknown_user_is_audited(client, users, db_session):
    response = await client.post("/v1/auth/login", json={
        "username": "ghost",
        "password": "whatever"
    })
    assert response.status_code == 401

    result = await db_session.execute(select(AuditLog).where(AuditLog.actor_username == "ghost"))
    log = result.scalar_one()
    assert log.actor_id is None
    assert log.action == AuditAction.LOGIN_FAILED
    assert log.meta_data == {"reason": "User not found"}


@pytest.mark.asyncio
async def test_inactive_user_cannot_login(client, db_session):
    db_session.add(User(
        email="former@test.com",
        username="former",
        name="Former",
        hashed_password=get_password_hash(PASSWORD),
        is_active=False,
    ))
    await db_session.commit()

    response = await client.post("/v1/auth/login", json={
        "username": "former",
        "password": PASSWORD
    })
    assert response.status_code == 403
    assert response.json()["error"] == "Inactive user account"


@pytest.mark.asyncio
async def test_successful_login_is_audited(client, users, db_session):
    await client.post("/v1/auth/login", json={"username": "md", "password": PASSWORD})

    history = await get_user_audit_history(db_session, users["md"]["user_id"])
    assert [log.action for log in history] == [AuditAction.LOGIN_SUCCESS]


@pytest.mark.asyncio
async def test_logout_revokes_token(client, users, mock_redis):
    headers = users["admin"]["headers"]

    response = await client.post("/v1/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"revoked": True}
    assert response.json()["message"] == "Logged out"

    response = await client.get("/v1/auth/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "Token has been revoked"


@pytest.mark.asyncio
async def test_deactivated_user_loses_access(client, users, db_session):
    """An active token stops working as soon as the account is deactivated."""
    user = await db_session.get(User, users["sales"]["user_id"])
    user.is_active = False
    await db_session.commit()

    response = await client.get("/v1/auth/me", headers=users["sales"]["headers"])
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_role_is_read_from_database(client, users, db_session):
    """A role change applies without waiting for the token to expire."""
    user = await db_session.get(User, users["sales"]["user_id"])
    user.role = UserRole.FINANCE_HEAD
    await db_session.commit()

    response = await client.get("/v1/finance/ledger", headers=users["sales"]["headers"])
    assert response.status_code == 200
