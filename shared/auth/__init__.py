"""
Authentication Module
=====================

JWT bearer authentication and role-based authorization.

Features:
- JWT access token validation
- Marketplace role hierarchy (customer < provider < admin < super_admin)
- FastAPI dependencies for route protection

Usage:
    from shared.auth import User, get_current_user, require_admin

    @router.get("/mine")
    async def mine(user: User = Depends(get_current_user)):
        return {"user": user.id}

    @router.get("/analytics")
    async def analytics(user: User = Depends(require_admin)):
        return {"admin": True}
"""

from shared.auth.dependencies import (
    User,
    get_current_active_user,
    get_current_user,
    get_verified_user,
    oauth2_scheme,
    require_admin,
    require_roles,
    require_super_admin,
)
from shared.auth.jwt import TokenData, create_access_token, decode_token
from shared.auth.roles import (
    ADMIN_ROLES,
    ROLE_HIERARCHY,
    UserRole,
    has_role_at_least,
    highest_role,
)

__all__ = [
    # JWT
    "create_access_token",
    "decode_token",
    "TokenData",
    # Roles
    "UserRole",
    "ROLE_HIERARCHY",
    "ADMIN_ROLES",
    "highest_role",
    "has_role_at_least",
    # Dependencies
    "User",
    "get_current_user",
    "get_current_active_user",
    "get_verified_user",
    "require_roles",
    "require_admin",
    "require_super_admin",
    "oauth2_scheme",
]
