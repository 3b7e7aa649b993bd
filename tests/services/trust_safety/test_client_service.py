"""
Client Service Tests
====================

Tests for client trust, suspensions, bookings and preferences.

Version: 0.1.0
"""

import pytest

from services.trust_safety.models.base import RiskLevel
from services.trust_safety.models.client import (
    BookingEvent,
    BookingOutcome,
    ClientProfile,
    ClientProfileCreate,
    LoyaltyTier,
)
from services.trust_safety.models.profile import Profile, ProfileCreate
from services.trust_safety.services import ClientService, ProfileService
from shared.auth.roles import UserRole
from shared.exceptions import (
    AlreadyInStateError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from shared.models import Pagination


async def make_client(
    profile_service: ProfileService, client_service: ClientService, user_id: str
) -> ClientProfile:
    profile = await profile_service.create(user_id, ProfileCreate())
    return await client_service.create(profile.id, ClientProfileCreate(), user_id, UserRole.CUSTOMER)


class TestCreate:
    @pytest.mark.asyncio
    async def test_defaults(self, client_profile: ClientProfile) -> None:
        assert client_profile.trust_score == 50
        # 10 for trust below 70 + 18 for three missing verifications
        assert client_profile.risk_level == RiskLevel.MEDIUM
        assert client_profile.loyalty_tier == LoyaltyTier.BRONZE

    @pytest.mark.asyncio
    async def test_requires_customer_role(
        self, client_service: ClientService, provider_profile: Profile
    ) -> None:
        with pytest.raises(ValidationError):
            await client_service.create(
                provider_profile.id, ClientProfileCreate(), "provider-1", UserRole.PROVIDER
            )

    @pytest.mark.asyncio
    async def test_one_per_profile(
        self,
        client_service: ClientService,
        customer_profile: Profile,
        client_profile: ClientProfile,
    ) -> None:
        with pytest.raises(ConflictError):
            await client_service.create(
                customer_profile.id, ClientProfileCreate(), "customer-1", UserRole.CUSTOMER
            )

    @pytest.mark.asyncio
    async def test_missing_profile(self, client_service: ClientService) -> None:
        with pytest.raises(NotFoundError):
            await client_service.create("nope", ClientProfileCreate(), "admin-1", UserRole.ADMIN)


class TestTrustScore:
    """Tests for trust updates and the derived risk level."""

    @pytest.mark.asyncio
    async def test_high_trust_is_low_risk(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        updated = await client_service.update_trust_score(client_profile.id, 85, "admin-1")

        assert updated.trust_score == 85
        assert updated.risk_level == RiskLevel.LOW

    @pytest.mark.asyncio
    async def test_critical_trust_pins_critical(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        await client_service.update_trust_score(client_profile.id, 85, "admin-1")

        updated = await client_service.update_trust_score(client_profile.id, 25, "admin-1", "Fraud")

        assert updated.risk_level == RiskLevel.CRITICAL
        assert (await client_service.get(client_profile.id)).risk_level == RiskLevel.CRITICAL

    @pytest.mark.parametrize("score", [-1, 100.5, 250])
    @pytest.mark.asyncio
    async def test_out_of_range_rejected(
        self, client_service: ClientService, client_profile: ClientProfile, score: float
    ) -> None:
        with pytest.raises(ValidationError):
            await client_service.update_trust_score(client_profile.id, score, "admin-1")

        assert (await client_service.get(client_profile.id)).trust_score == 50

    @pytest.mark.asyncio
    async def test_verification_recomputes_risk(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        await client_service.update_trust_score(client_profile.id, 60, "admin-1")
        assert (await client_service.get(client_profile.id)).risk_level == RiskLevel.MEDIUM

        updated = await client_service.update(
            client_profile.id,
            {"is_phone_verified": True, "is_email_verified": True, "is_address_verified": True},
            "admin-1",
            UserRole.ADMIN,
        )

        assert updated.risk_level == RiskLevel.LOW

    @pytest.mark.asyncio
    async def test_owner_cannot_set_trust(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        with pytest.raises(ValidationError):
            await client_service.update(
                client_profile.id, {"trust_score": 99}, "customer-1", UserRole.CUSTOMER
            )


class TestSuspensions:
    @pytest.mark.asyncio
    async def test_suspend_and_resolve(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        suspended = await client_service.add_suspension(client_profile.id, "Abusive", 7, "admin-1")

        assert suspended.is_suspended is True
        assert suspended.suspension_history[-1].suspended_by == "admin-1"
        assert "Suspended: Abusive" in suspended.flags

        resolved = await client_service.resolve_suspension(client_profile.id, "admin-1")

        assert resolved.is_suspended is False
        assert resolved.suspension_history[-1].resolved_at is not None

    @pytest.mark.asyncio
    async def test_double_suspension_rejected(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        await client_service.add_suspension(client_profile.id, "Abusive", 7, "admin-1")

        with pytest.raises(AlreadyInStateError):
            await client_service.add_suspension(client_profile.id, "Again", 7, "admin-1")

    @pytest.mark.asyncio
    async def test_resolve_without_suspension(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        with pytest.raises(InvalidTransitionError):
            await client_service.resolve_suspension(client_profile.id, "admin-1")


class TestBookings:
    """Tests for booking counters and stats."""

    @pytest.mark.asyncio
    async def test_counters(self, client_service: ClientService, client_profile: ClientProfile) -> None:
        for _ in range(4):
            await client_service.record_booking(client_profile.id, BookingEvent(outcome=BookingOutcome.CREATED))
        await client_service.record_booking(
            client_profile.id, BookingEvent(outcome=BookingOutcome.COMPLETED, amount=120)
        )
        await client_service.record_booking(
            client_profile.id, BookingEvent(outcome=BookingOutcome.COMPLETED, amount=80)
        )
        client = await client_service.record_booking(
            client_profile.id, BookingEvent(outcome=BookingOutcome.CANCELLED)
        )

        assert client.total_bookings == 4
        assert client.completed_bookings == 2
        assert client.total_spent == 200
        assert client.average_booking_value == 100

        stats = await client_service.client_stats(client_profile.id)
        assert stats.completion_rate == 50
        assert stats.cancellation_rate == 25
        assert stats.verification_level == "none"

    @pytest.mark.asyncio
    async def test_outcome_without_creation_counts(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        client = await client_service.record_booking(
            client_profile.id, BookingEvent(outcome=BookingOutcome.DISPUTED)
        )

        assert client.total_bookings == 1
        assert client.disputed_bookings == 1


class TestPreferences:
    @pytest.mark.asyncio
    async def test_preferred_services(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        added = await client_service.add_preferred_service(
            client_profile.id, "cleaning", "customer-1", UserRole.CUSTOMER
        )
        assert added.preferred_services == ["cleaning"]

        with pytest.raises(AlreadyInStateError):
            await client_service.add_preferred_service(
                client_profile.id, "cleaning", "customer-1", UserRole.CUSTOMER
            )

        removed = await client_service.remove_preferred_service(
            client_profile.id, "cleaning", "customer-1", UserRole.CUSTOMER
        )
        assert removed.preferred_services == []

    @pytest.mark.asyncio
    async def test_remove_unknown_provider(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        with pytest.raises(NotFoundError):
            await client_service.remove_preferred_provider(
                client_profile.id, "prov-9", "customer-1", UserRole.CUSTOMER
            )

    @pytest.mark.asyncio
    async def test_stranger_denied(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        with pytest.raises(PermissionDeniedError):
            await client_service.add_preferred_provider(
                client_profile.id, "prov-1", "stranger", UserRole.CUSTOMER
            )


class TestFeedback:
    """Tests for provider ratings and complaints against clients."""

    @pytest.mark.asyncio
    async def test_ratings_fold_into_average(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        await client_service.record_review(client_profile.id, 4, "provider-1")
        updated = await client_service.record_review(client_profile.id, 2, "provider-2")

        assert updated.average_rating == 3.0
        assert updated.total_reviews == 2

        stats = await client_service.client_stats(client_profile.id)
        assert stats.average_rating == 3.0
        assert stats.total_reviews == 2

    @pytest.mark.asyncio
    async def test_rating_out_of_range(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        with pytest.raises(ValidationError):
            await client_service.record_review(client_profile.id, 6, "provider-1")

    @pytest.mark.asyncio
    async def test_cannot_review_self(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        with pytest.raises(ValidationError):
            await client_service.record_review(client_profile.id, 5, "customer-1")

    @pytest.mark.asyncio
    async def test_complaints_raise_risk(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        for _ in range(3):
            client = await client_service.record_complaint(
                client_profile.id, "provider-1", "Refused to pay"
            )

        # 28 baseline points + 5 per complaint
        assert client.risk_level == RiskLevel.HIGH
        assert client.risk_factors == ["Complaint: Refused to pay"] * 3


class TestViews:
    @pytest.mark.asyncio
    async def test_owner_and_admin_only(
        self,
        client_service: ClientService,
        customer_profile: Profile,
        client_profile: ClientProfile,
    ) -> None:
        assert (await client_service.view(client_profile.id, "customer-1", UserRole.CUSTOMER)).id == client_profile.id
        assert (await client_service.view(client_profile.id, "admin-1", UserRole.ADMIN)).id == client_profile.id

        with pytest.raises(PermissionDeniedError):
            await client_service.view(client_profile.id, "customer-2", UserRole.CUSTOMER)
        with pytest.raises(PermissionDeniedError):
            await client_service.view_by_profile(customer_profile.id, "customer-2", UserRole.CUSTOMER)

    @pytest.mark.asyncio
    async def test_stats_visible_to_providers(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        stats = await client_service.view_stats(client_profile.id, "provider-9", UserRole.PROVIDER)
        assert stats.client_id == client_profile.id

        with pytest.raises(PermissionDeniedError):
            await client_service.view_stats(client_profile.id, "customer-2", UserRole.CUSTOMER)


class TestFinders:
    @pytest.mark.asyncio
    async def test_trust_range(self, profile_service: ProfileService, client_service: ClientService) -> None:
        low = await make_client(profile_service, client_service, "c1")
        high = await make_client(profile_service, client_service, "c2")
        await client_service.update_trust_score(low.id, 20, "admin-1")
        await client_service.update_trust_score(high.id, 90, "admin-1")

        page = await client_service.find_by_trust_range(80, 100, Pagination())

        assert [c.id for c in page.items] == [high.id]

    @pytest.mark.asyncio
    async def test_trust_range_validated(self, client_service: ClientService) -> None:
        with pytest.raises(ValidationError):
            await client_service.find_by_trust_range(70, 30, Pagination())

        with pytest.raises(ValidationError):
            await client_service.find_by_trust_range(0, 101, Pagination())

    @pytest.mark.asyncio
    async def test_high_risk_sorted_by_trust(
        self, profile_service: ProfileService, client_service: ClientService
    ) -> None:
        a = await make_client(profile_service, client_service, "c1")
        b = await make_client(profile_service, client_service, "c2")
        await make_client(profile_service, client_service, "c3")
        await client_service.update_trust_score(a.id, 25, "admin-1")
        await client_service.update_trust_score(b.id, 10, "admin-1")

        page = await client_service.find_high_risk(Pagination())

        assert [c.id for c in page.items] == [b.id, a.id]

    @pytest.mark.asyncio
    async def test_statistics(
        self, client_service: ClientService, client_profile: ClientProfile
    ) -> None:
        await client_service.add_suspension(client_profile.id, "Abusive", 3, "admin-1")

        stats = await client_service.statistics()

        assert stats["total"] == 1
        assert stats["suspended"] == 1
        assert stats["average_trust_score"] == 50
        assert stats["by_risk_level"]["medium"] == 1
