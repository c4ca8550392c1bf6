"""
Security guards for role-based access control.

Provides dependencies for protecting endpoints.
"""

import logging
from typing import List
from fastapi import Depends, HTTPException, status
from fleetflow.app.models.enums import UserRole
from fleetflow.app.core.dependencies import get_current_user

logger = logging.getLogger("fleetflow.auth")


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/trips")
        async def create_trip(current_user: dict = Depends(require_role([UserRole.DISPATCHER]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates user role

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            logger.warning(
                "Access denied for %s. Role: %s, Required: %s",
                current_user.get("sub"), user_role.value, ", ".join(r.value for r in allowed_roles)
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


# Shorthands for the role sets used across routers
MANAGERS = [UserRole.FLEET_MANAGER]
OPERATIONS = [UserRole.FLEET_MANAGER, UserRole.DISPATCHER]
SAFETY = [UserRole.FLEET_MANAGER, UserRole.SAFETY_OFFICER]
