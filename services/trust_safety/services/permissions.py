"""
Field Permissions
=================

Declarative table of which role may write which fields through the generic
update path. Derived fields (scores, counters, risk, soft delete, version)
appear in no row: only the lifecycle services write them.

Version: 0.1.0
"""

from enum import Enum
from typing import Any

from shared.auth.roles import ADMIN_ROLES, UserRole
from shared.exceptions import PermissionDeniedError, ValidationError


class Entity(str, Enum):
    PROFILE = "profile"
    PROVIDER = "provider"
    CLIENT = "client"
    WARNING = "warning"


_PROFILE_OWNER = frozenset(
    {
        "bio",
        "location",
        "contact_details",
        "id_details",
        "social_media_handles",
        "preferences",
        "profile_picture",
    }
)
_PROFILE_ADMIN = _PROFILE_OWNER | {"verification_status", "is_active_in_marketplace"}

_PROVIDER_OWNER = frozenset(
    {
        "provider_contact_info",
        "business_name",
        "service_offerings",
        "is_always_available",
        "require_initial_deposit",
        "percentage_deposit",
    }
)

_CLIENT_OWNER = frozenset({"preferred_services", "preferred_providers", "preferred_contact_method"})
_CLIENT_ADMIN = _CLIENT_OWNER | {
    "notes",
    "loyalty_tier",
    "risk_factors",
    "is_phone_verified",
    "is_email_verified",
    "is_address_verified",
}

_WARNING_ADMIN = frozenset(
    {"category", "severity", "reason", "details", "notes", "evidence", "expires_at"}
)

FIELD_CAPABILITIES: dict[Entity, dict[UserRole, frozenset[str]]] = {
    Entity.PROFILE: {
        UserRole.CUSTOMER: _PROFILE_OWNER,
        UserRole.PROVIDER: _PROFILE_OWNER,
        UserRole.ADMIN: _PROFILE_ADMIN,
        UserRole.SUPER_ADMIN: _PROFILE_ADMIN | {"role"},
    },
    Entity.PROVIDER: {
        UserRole.CUSTOMER: frozenset(),
        UserRole.PROVIDER: _PROVIDER_OWNER,
        UserRole.ADMIN: _PROVIDER_OWNER,
        UserRole.SUPER_ADMIN: _PROVIDER_OWNER,
    },
    Entity.CLIENT: {
        UserRole.CUSTOMER: _CLIENT_OWNER,
        UserRole.PROVIDER: frozenset(),
        UserRole.ADMIN: _CLIENT_ADMIN,
        UserRole.SUPER_ADMIN: _CLIENT_ADMIN,
    },
    Entity.WARNING: {
        UserRole.CUSTOMER: frozenset(),
        UserRole.PROVIDER: frozenset(),
        UserRole.ADMIN: _WARNING_ADMIN,
        UserRole.SUPER_ADMIN: _WARNING_ADMIN,
    },
}


def allowed_fields(entity: Entity, role: UserRole) -> frozenset[str]:
    return FIELD_CAPABILITIES[entity].get(role, frozenset())


def filter_update(entity: Entity, role: UserRole, changes: dict[str, Any]) -> dict[str, Any]:
    """
    Check a partial update against the capability table.

    Args:
        entity: Entity kind being updated
        role: Acting role
        changes: Field name to new value

    Returns:
        The changes unchanged when every field is allowed

    Raises:
        ValidationError: Naming every field the role may not write
    """
    allowed = allowed_fields(entity, role)
    rejected = sorted(name for name in changes if name not in allowed)
    if rejected:
        raise ValidationError(
            f"Fields not writable by {role.value}: {', '.join(rejected)}",
            details={"entity": entity.value, "role": role.value, "fields": rejected},
        )
    return dict(changes)


def is_admin(role: UserRole) -> bool:
    return role in ADMIN_ROLES


def ensure_owner_or_admin(owner_id: str, actor_id: str, role: UserRole, entity: str) -> None:
    """Only the owning user or an admin may act on an entity."""
    if is_admin(role) or owner_id == actor_id:
        return
    raise PermissionDeniedError(
        f"Not allowed to act on this {entity}",
        details={"entity": entity, "actor_id": actor_id},
    )
