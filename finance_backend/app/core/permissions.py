"""
Role -> permission table and pure access predicates.

The table is built once at import and exposed read-only. Predicates take
plain role/id values so they can be evaluated without a database.
"""

import enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Union

from finance_backend.app.models.enums import UserRole


class Permission(str, enum.Enum):
    """Permission tags checked by route guards."""
    FINANCE_READ = "finance:read"
    FINANCE_WRITE = "finance:write"
    FINANCE_APPROVE = "finance:approve"
    FINANCE_MASTERS_WRITE = "finance:masters:write"


P = Permission

NO_PERMISSIONS: FrozenSet[Permission] = frozenset()

ROLE_PERMISSIONS: Mapping[UserRole, FrozenSet[Permission]] = MappingProxyType({
    UserRole.MD: frozenset({P.FINANCE_READ, P.FINANCE_APPROVE}),
    UserRole.SALES_HEAD: NO_PERMISSIONS,
    UserRole.TEAM_LEAD: NO_PERMISSIONS,
    UserRole.BD: NO_PERMISSIONS,
    UserRole.INSURANCE_HEAD: NO_PERMISSIONS,
    UserRole.PL_HEAD: NO_PERMISSIONS,
    UserRole.HR_HEAD: NO_PERMISSIONS,
    UserRole.FINANCE_HEAD: frozenset({P.FINANCE_READ, P.FINANCE_WRITE, P.FINANCE_MASTERS_WRITE}),
    UserRole.OUTSTANDING_HEAD: NO_PERMISSIONS,
    UserRole.ADMIN: frozenset(Permission),
    UserRole.USER: NO_PERMISSIONS,
})

# Roles that see every lead regardless of owner or team
LEAD_WIDE_ROLES = frozenset({
    UserRole.MD, UserRole.SALES_HEAD, UserRole.INSURANCE_HEAD, UserRole.PL_HEAD, UserRole.ADMIN,
})


def _as_role(role: Union[UserRole, str, None]) -> Optional[UserRole]:
    if role is None:
        return None
    try:
        return UserRole(role)
    except ValueError:
        return None


def permissions_for(role: Union[UserRole, str, None]) -> FrozenSet[Permission]:
    """Permissions granted to a role; unknown roles get none."""
    resolved = _as_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(resolved, frozenset())


def has_permission(role: Union[UserRole, str, None], permission: Union[Permission, str]) -> bool:
    """Check a single permission tag for a role."""
    return Permission(permission) in permissions_for(role)


def can_access_lead(
    role: Union[UserRole, str, None],
    user_id: Optional[int],
    team_id: Optional[int],
    lead_bd_id: Optional[int],
    lead_team_id: Optional[int] = None,
) -> bool:
    """
    Whether a user may open a lead.

    Leadership roles see everything, a team lead sees their team's leads,
    a BD sees only leads they own.
    """
    resolved = _as_role(role)
    if resolved is None:
        return False

    if resolved in LEAD_WIDE_ROLES:
        return True

    if resolved == UserRole.TEAM_LEAD:
        return lead_team_id is not None and team_id == lead_team_id

    if resolved == UserRole.BD:
        return user_id is not None and user_id == lead_bd_id

    return False


def can_manage_team(
    role: Union[UserRole, str, None],
    user_id: Optional[int],
    team_sales_head_id: Optional[int] = None,
) -> bool:
    """MD/ADMIN manage any team; a sales head manages the teams they head."""
    resolved = _as_role(role)
    if resolved in (UserRole.MD, UserRole.ADMIN):
        return True
    if resolved == UserRole.SALES_HEAD:
        return user_id is not None and team_sales_head_id == user_id
    return False
