"""
Security guards for permission-based access control.

Provides dependency factories for protecting endpoints.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from finance_backend.app.core.dependencies import get_current_user
from finance_backend.app.core.permissions import Permission, has_permission
from finance_backend.app.models.enums import UserRole


def require_permission(permission: Permission, detail: str = "Forbidden"):
    """
    Dependency factory for permission-based access control.

    Usage:
        @router.post("/finance/ledger")
        async def create_entry(
            current_user: dict = Depends(require_permission(Permission.FINANCE_WRITE))
        ):
            ...

    Args:
        permission: Permission tag the caller's role must hold
        detail: Message returned with the 403

    Returns:
        FastAPI dependency function that validates the permission

    Raises:
        HTTPException 403 if the role lacks the permission
    """
    async def permission_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if not has_permission(current_user.get("role"), permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=detail
            )
        return current_user

    return permission_checker


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker
