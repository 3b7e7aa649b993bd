"""
Marketplace Roles
=================

Role enum and hierarchy used for authorization and field capabilities.

Version: 0.1.0
"""

from enum import Enum


class UserRole(str, Enum):
    """Marketplace user roles."""

    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.CUSTOMER: 1,
    UserRole.PROVIDER: 2,
    UserRole.ADMIN: 3,
    UserRole.SUPER_ADMIN: 4,
}

ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


def highest_role(roles: list[str]) -> UserRole:
    """Return the most privileged known role, defaulting to customer."""
    values = {r.value for r in UserRole}
    known = [UserRole(r) for r in roles if r in values]
    if not known:
        return UserRole.CUSTOMER
    return max(known, key=ROLE_HIERARCHY.__getitem__)


def has_role_at_least(roles: list[str], minimum: UserRole) -> bool:
    """Check whether any held role reaches the minimum level."""
    return ROLE_HIERARCHY[highest_role(roles)] >= ROLE_HIERARCHY[minimum]
