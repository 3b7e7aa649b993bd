"""
Permission Tests
================

Tests for the field capability table and ownership checks.

Version: 0.1.0
"""

import pytest

from services.trust_safety.services.permissions import (
    Entity,
    allowed_fields,
    ensure_owner_or_admin,
    filter_update,
    is_admin,
)
from shared.auth.roles import UserRole
from shared.exceptions import PermissionDeniedError, ValidationError


DERIVED_FIELDS = {
    Entity.PROFILE: {"warnings_count", "completeness", "is_deleted", "version"},
    Entity.PROVIDER: {"risk_level", "risk_score", "penalties_count", "mitigation_measures"},
    Entity.CLIENT: {"trust_score", "risk_level", "warnings_count", "total_bookings"},
    Entity.WARNING: {"status", "is_active", "acknowledged_at", "resolved_at"},
}


class TestCapabilityTable:
    """Tests for which role may write which field."""

    @pytest.mark.parametrize("entity", list(Entity))
    @pytest.mark.parametrize("role", list(UserRole))
    def test_derived_fields_never_writable(self, entity: Entity, role: UserRole) -> None:
        assert not DERIVED_FIELDS[entity] & allowed_fields(entity, role)

    def test_owner_can_edit_bio(self) -> None:
        assert filter_update(Entity.PROFILE, UserRole.CUSTOMER, {"bio": "Hi"}) == {"bio": "Hi"}

    def test_owner_cannot_verify_self(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            filter_update(
                Entity.PROFILE,
                UserRole.PROVIDER,
                {"bio": "Hi", "verification_status": "verified", "warnings_count": 0},
            )

        assert exc_info.value.details["fields"] == ["verification_status", "warnings_count"]

    def test_admin_can_verify(self) -> None:
        changes = {"verification_status": "verified", "is_active_in_marketplace": False}

        assert filter_update(Entity.PROFILE, UserRole.ADMIN, changes) == changes

    def test_only_super_admin_changes_role(self) -> None:
        with pytest.raises(ValidationError):
            filter_update(Entity.PROFILE, UserRole.ADMIN, {"role": "admin"})

        assert filter_update(Entity.PROFILE, UserRole.SUPER_ADMIN, {"role": "admin"})

    def test_customer_cannot_touch_client_notes(self) -> None:
        with pytest.raises(ValidationError):
            filter_update(Entity.CLIENT, UserRole.CUSTOMER, {"notes": "vip"})

    def test_non_admin_cannot_edit_warnings(self) -> None:
        with pytest.raises(ValidationError):
            filter_update(Entity.WARNING, UserRole.CUSTOMER, {"reason": "nothing"})

    def test_empty_update_allowed(self) -> None:
        assert filter_update(Entity.PROVIDER, UserRole.CUSTOMER, {}) == {}


class TestOwnership:
    def test_owner_allowed(self) -> None:
        ensure_owner_or_admin("u1", "u1", UserRole.CUSTOMER, "profile")

    def test_admin_allowed(self) -> None:
        ensure_owner_or_admin("u1", "a1", UserRole.ADMIN, "profile")

    def test_stranger_denied(self) -> None:
        with pytest.raises(PermissionDeniedError):
            ensure_owner_or_admin("u1", "u2", UserRole.PROVIDER, "profile")

    def test_is_admin(self) -> None:
        assert is_admin(UserRole.SUPER_ADMIN)
        assert not is_admin(UserRole.PROVIDER)
