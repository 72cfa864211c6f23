"""
Role/permission table and access predicates.
"""

import pytest

from finance_backend.app.core.permissions import (
    Permission,
    ROLE_PERMISSIONS,
    has_permission,
    permissions_for,
    can_access_lead,
    can_manage_team,
)
from finance_backend.app.models.enums import UserRole


def test_every_role_has_an_entry():
    assert set(ROLE_PERMISSIONS) == set(UserRole)


def test_table_is_read_only():
    with pytest.raises(TypeError):
        ROLE_PERMISSIONS[UserRole.USER] = frozenset({Permission.FINANCE_READ})


def test_admin_holds_every_permission():
    assert permissions_for(UserRole.ADMIN) == frozenset(Permission)


@pytest.mark.parametrize("role, permission, expected", [
    (UserRole.FINANCE_HEAD, Permission.FINANCE_WRITE, True),
    (UserRole.FINANCE_HEAD, Permission.FINANCE_MASTERS_WRITE, True),
    (UserRole.FINANCE_HEAD, Permission.FINANCE_APPROVE, False),
    (UserRole.MD, Permission.FINANCE_APPROVE, True),
    (UserRole.MD, Permission.FINANCE_WRITE, False),
    (UserRole.SALES_HEAD, Permission.FINANCE_READ, False),
    (UserRole.USER, Permission.FINANCE_READ, False),
    (UserRole.HR_HEAD, Permission.FINANCE_READ, False),
    ("ADMIN", "finance:approve", True),
])
def test_has_permission(role, permission, expected):
    assert has_permission(role, permission) is expected


def test_unknown_role_has_nothing():
    assert permissions_for("JANITOR") == frozenset()
    assert permissions_for(None) == frozenset()
    assert has_permission("JANITOR", Permission.FINANCE_READ) is False


def test_unknown_permission_tag_raises():
    with pytest.raises(ValueError):
        has_permission(UserRole.ADMIN, "finance:teleport")


@pytest.mark.parametrize("role, user_id, team_id, lead_bd_id, lead_team_id, expected", [
    (UserRole.MD, 1, None, 99, None, True),
    (UserRole.ADMIN, 1, None, 99, 7, True),
    (UserRole.TEAM_LEAD, 1, 7, 99, 7, True),
    (UserRole.TEAM_LEAD, 1, 7, 99, 8, False),
    (UserRole.TEAM_LEAD, 1, None, 99, None, False),
    (UserRole.BD, 5, 7, 5, 7, True),
    (UserRole.BD, 5, 7, 6, 7, False),
    (UserRole.FINANCE_HEAD, 1, 7, 1, 7, False),
    ("NOT_A_ROLE", 1, 7, 1, 7, False),
])
def test_can_access_lead(role, user_id, team_id, lead_bd_id, lead_team_id, expected):
    assert can_access_lead(role, user_id, team_id, lead_bd_id, lead_team_id) is expected


@pytest.mark.parametrize("role, user_id, head_id, expected", [
    (UserRole.MD, 1, None, True),
    (UserRole.ADMIN, 1, 2, True),
    (UserRole.SALES_HEAD, 3, 3, True),
    (UserRole.SALES_HEAD, 3, 4, False),
    (UserRole.TEAM_LEAD, 3, 3, False),
])
def test_can_manage_team(role, user_id, head_id, expected):
    assert can_manage_team(role, user_id, head_id) is expected
