"""
Provider Service Tests
======================

Tests for provider risk escalation, assessments and operations.

Version: 0.1.0
"""

import pytest
from datetime import timedelta

from services.trust_safety.models.base import RiskLevel, utcnow
from services.trust_safety.models.profile import Profile, ProfileCreate
from services.trust_safety.models.provider import (
    PerformanceMetricsUpdate,
    ProviderOperationalStatus,
    ProviderProfile,
    ProviderProfileCreate,
    RiskAssessmentUpdate,
    RiskFactorsUpdate,
    WorkingHours,
)
from services.trust_safety.services import ProfileService, ProviderService
from services.trust_safety.services.transitions import (
    CRITICAL_RISK_JOB_VALUE_CAP,
    HIGH_RISK_JOB_VALUE_CAP,
)
from shared.auth.roles import UserRole
from shared.exceptions import (
    AlreadyInStateError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from shared.models import Pagination


async def make_provider(
    profile_service: ProfileService, provider_service: ProviderService, user_id: str
) -> ProviderProfile:
    profile = await profile_service.create(user_id, ProfileCreate(role=UserRole.PROVIDER))
    return await provider_service.create(profile.id, ProviderProfileCreate(), user_id, UserRole.PROVIDER)


class TestCreate:
    @pytest.mark.asyncio
    async def test_new_provider_starts_medium(self, provider: ProviderProfile) -> None:
        assert provider.operational_status == ProviderOperationalStatus.PROBATIONARY
        assert provider.risk_factors.new_provider is True
        assert provider.risk_score == 20
        assert provider.risk_level == RiskLevel.MEDIUM

    @pytest.mark.asyncio
    async def test_requires_provider_role(
        self, provider_service: ProviderService, customer_profile: Profile
    ) -> None:
        with pytest.raises(ValidationError):
            await provider_service.create(
                customer_profile.id, ProviderProfileCreate(), "customer-1", UserRole.CUSTOMER
            )

    @pytest.mark.asyncio
    async def test_one_per_profile(
        self,
        provider_service: ProviderService,
        provider_profile: Profile,
        provider: ProviderProfile,
    ) -> None:
        with pytest.raises(ConflictError):
            await provider_service.create(
                provider_profile.id, ProviderProfileCreate(), "provider-1", UserRole.PROVIDER
            )

    @pytest.mark.asyncio
    async def test_lookup_by_profile(
        self,
        provider_service: ProviderService,
        provider_profile: Profile,
        provider: ProviderProfile,
    ) -> None:
        assert (await provider_service.get_by_profile(provider_profile.id)).id == provider.id

        with pytest.raises(NotFoundError):
            await provider_service.get_by_profile("missing")


class TestPenalties:
    """Tests for penalty driven escalation."""

    @pytest.mark.asyncio
    async def test_third_penalty_escalates_to_high(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        for _ in range(2):
            provider = await provider_service.apply_penalty(provider.id, "admin-1")
        assert provider.risk_level == RiskLevel.MEDIUM

        provider = await provider_service.apply_penalty(provider.id, "admin-1", reason="No-show")

        assert provider.penalties_count == 3
        assert provider.risk_level == RiskLevel.HIGH
        assert provider.mitigation_measures.max_job_value == HIGH_RISK_JOB_VALUE_CAP
        assert provider.mitigation_measures.frequent_checkins is True
        assert provider.last_penalty_date is not None

    @pytest.mark.asyncio
    async def test_fifth_penalty_escalates_to_critical(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        for _ in range(5):
            provider = await provider_service.apply_penalty(provider.id, "admin-1")

        assert provider.risk_level == RiskLevel.CRITICAL
        assert provider.mitigation_measures.requires_deposit is True
        assert provider.mitigation_measures.requires_supervision is True
        assert provider.mitigation_measures.max_job_value == CRITICAL_RISK_JOB_VALUE_CAP


class TestRiskAssessment:
    """Tests for explicit admin assessments."""

    @pytest.mark.asyncio
    async def test_explicit_assessment_can_lower_level(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        for _ in range(3):
            await provider_service.apply_penalty(provider.id, "admin-1")

        assessed = await provider_service.update_risk_assessment(
            provider.id,
            RiskAssessmentUpdate(
                risk_level=RiskLevel.LOW,
                risk_factors=RiskFactorsUpdate(new_provider=False),
                notes="Reviewed in person",
                next_assessment_days=30,
            ),
            "admin-1",
        )

        assert assessed.risk_level == RiskLevel.LOW
        assert assessed.risk_score == 0
        assert assessed.mitigation_measures.max_job_value is None
        assert assessed.mitigation_measures.frequent_checkins is False
        assert assessed.risk_assessed_by == "admin-1"
        assert assessed.risk_assessment_notes == "Reviewed in person"
        assert assessed.next_assessment_date - assessed.last_risk_assessment_date == timedelta(days=30)

    @pytest.mark.asyncio
    async def test_explicit_level_floored_by_factors(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        assessed = await provider_service.update_risk_assessment(
            provider.id,
            RiskAssessmentUpdate(
                risk_level=RiskLevel.LOW,
                risk_factors=RiskFactorsUpdate(
                    low_completion_rate=True, verification_gaps=["id", "address"]
                ),
            ),
            "admin-1",
        )

        # 20 new provider + 25 low completion + 20 gaps
        assert assessed.risk_score == 65
        assert assessed.risk_level == RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_schedule_horizon_validated(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        with pytest.raises(ValidationError):
            await provider_service.schedule_next_assessment(provider.id, "admin-1", days_from_now=0)

        scheduled = await provider_service.schedule_next_assessment(provider.id, "admin-1", 14)
        assert scheduled.next_assessment_date > utcnow() + timedelta(days=13)

    @pytest.mark.asyncio
    async def test_bulk_assessment_reports_missing(
        self, profile_service: ProfileService, provider_service: ProviderService
    ) -> None:
        ids = [(await make_provider(profile_service, provider_service, f"prov-{i}")).id for i in range(4)]
        ids.insert(2, "missing-provider")

        result = await provider_service.bulk_update_risk_assessments(
            ids, RiskAssessmentUpdate(notes="Quarterly"), "admin-1"
        )

        assert (result.total_processed, result.successful, result.failed) == (5, 4, 1)
        failed = [r for r in result.results if not r.success]
        assert failed[0].id == "missing-provider"

    @pytest.mark.asyncio
    async def test_overdue_assessments(
        self, profile_service: ProfileService, provider_service: ProviderService
    ) -> None:
        first = await make_provider(profile_service, provider_service, "prov-a")
        await make_provider(profile_service, provider_service, "prov-b")
        await provider_service.schedule_next_assessment(first.id, "admin-1", 1)

        overdue = await provider_service.find_overdue_assessments(now=utcnow() + timedelta(days=2))

        # Providers never scheduled are not overdue
        assert [p.id for p in overdue] == [first.id]


class TestMetrics:
    @pytest.mark.asyncio
    async def test_rates_clamped(self, provider_service: ProviderService, provider: ProviderProfile) -> None:
        updated = await provider_service.update_performance_metrics(
            provider.id,
            PerformanceMetricsUpdate(completion_rate=140, average_rating=7, cancellation_rate=-5),
        )

        metrics = updated.performance_metrics
        assert metrics.completion_rate == 100
        assert metrics.average_rating == 5
        assert metrics.cancellation_rate == 0

    @pytest.mark.asyncio
    async def test_metrics_only_escalate(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        worse = await provider_service.update_performance_metrics(
            provider.id,
            PerformanceMetricsUpdate(total_jobs=2, completion_rate=40, cancellation_rate=30),
        )
        # 20 new provider + 25 low completion + 20 high cancellation
        assert worse.risk_score == 65
        assert worse.risk_level == RiskLevel.HIGH

        better = await provider_service.update_performance_metrics(
            provider.id,
            PerformanceMetricsUpdate(total_jobs=50, completion_rate=99, cancellation_rate=1),
        )
        assert better.risk_factors.low_completion_rate is False
        assert better.risk_level == RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_risk_report(self, provider_service: ProviderService, provider: ProviderProfile) -> None:
        report = await provider_service.risk_report(provider.id)

        assert report.provider_id == provider.id
        assert report.risk_level == RiskLevel.MEDIUM
        assert report.is_assessment_overdue is False


class TestOperations:
    """Tests for status, availability and offerings."""

    @pytest.mark.asyncio
    async def test_status_change_logged(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        updated = await provider_service.update_operational_status(
            provider.id, ProviderOperationalStatus.ACTIVE, "admin-1", reason="Vetted"
        )

        assert updated.operational_status == ProviderOperationalStatus.ACTIVE
        assert len(updated.status_history) == 1
        assert updated.status_history[0].from_status == ProviderOperationalStatus.PROBATIONARY

    @pytest.mark.asyncio
    async def test_same_status_rejected(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        with pytest.raises(AlreadyInStateError):
            await provider_service.update_operational_status(
                provider.id, ProviderOperationalStatus.PROBATIONARY, "admin-1"
            )

    @pytest.mark.asyncio
    async def test_suspended_cannot_become_available(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        on = await provider_service.toggle_availability(provider.id, "provider-1", UserRole.PROVIDER)
        assert on.is_currently_available is True

        suspended = await provider_service.update_operational_status(
            provider.id, ProviderOperationalStatus.SUSPENDED, "admin-1"
        )
        assert suspended.is_currently_available is False

        with pytest.raises(ValidationError):
            await provider_service.toggle_availability(provider.id, "provider-1", UserRole.PROVIDER)

    @pytest.mark.asyncio
    async def test_other_user_cannot_toggle(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        with pytest.raises(PermissionDeniedError):
            await provider_service.toggle_availability(provider.id, "stranger", UserRole.PROVIDER)

    @pytest.mark.asyncio
    async def test_service_offerings(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        added = await provider_service.add_service_offering(
            provider.id, "electrical", "provider-1", UserRole.PROVIDER
        )
        assert added.service_offerings == ["plumbing", "electrical"]

        with pytest.raises(AlreadyInStateError):
            await provider_service.add_service_offering(
                provider.id, "plumbing", "provider-1", UserRole.PROVIDER
            )

        removed = await provider_service.remove_service_offering(
            provider.id, "plumbing", "provider-1", UserRole.PROVIDER
        )
        assert removed.service_offerings == ["electrical"]

        with pytest.raises(NotFoundError):
            await provider_service.remove_service_offering(
                provider.id, "plumbing", "provider-1", UserRole.PROVIDER
            )

    @pytest.mark.asyncio
    async def test_working_hours(self, provider_service: ProviderService, provider: ProviderProfile) -> None:
        hours = WorkingHours(start="08:00", end="16:00")

        updated = await provider_service.update_working_hours(
            provider.id, " Monday ", hours, "provider-1", UserRole.PROVIDER
        )
        assert updated.working_hours["monday"].end == "16:00"

        with pytest.raises(ValidationError):
            await provider_service.update_working_hours(
                provider.id, "funday", hours, "provider-1", UserRole.PROVIDER
            )

    @pytest.mark.asyncio
    async def test_derived_fields_not_writable(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        with pytest.raises(ValidationError):
            await provider_service.update(
                provider.id, {"risk_level": "low"}, "provider-1", UserRole.PROVIDER
            )

    @pytest.mark.asyncio
    async def test_soft_delete(self, provider_service: ProviderService, provider: ProviderProfile) -> None:
        await provider_service.soft_delete(provider.id, "provider-1", UserRole.PROVIDER)

        with pytest.raises(NotFoundError):
            await provider_service.get(provider.id)


class TestFeedback:
    """Tests for ratings and complaints feeding the risk factors."""

    @pytest.mark.asyncio
    async def test_ratings_fold_into_average(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        await provider_service.record_review(provider.id, 5, "customer-1")
        updated = await provider_service.record_review(provider.id, 4, "customer-2")

        assert updated.performance_metrics.average_rating == 4.5
        assert updated.performance_metrics.total_reviews == 2
        assert updated.risk_factors.negative_reviews == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6, -1])
    async def test_rating_out_of_range(
        self, provider_service: ProviderService, provider: ProviderProfile, rating: int
    ) -> None:
        with pytest.raises(ValidationError):
            await provider_service.record_review(provider.id, rating, "customer-1")

    @pytest.mark.asyncio
    async def test_cannot_review_self(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        with pytest.raises(ValidationError):
            await provider_service.record_review(provider.id, 5, "provider-1")
        with pytest.raises(ValidationError):
            await provider_service.record_complaint(provider.id, "provider-1", "Spite")

    @pytest.mark.asyncio
    async def test_complaints_and_bad_reviews_escalate(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        for _ in range(5):
            provider = await provider_service.record_complaint(provider.id, "customer-1", "No-show")
        # 20 new provider + 20 complaints (capped)
        assert provider.risk_score == 40
        assert provider.risk_level == RiskLevel.MEDIUM

        for _ in range(5):
            provider = await provider_service.record_review(provider.id, 1, "customer-1")

        # + 15 negative reviews (capped)
        assert provider.risk_score == 55
        assert provider.risk_level == RiskLevel.HIGH
        assert provider.risk_factors.recent_complaints == 5
        assert provider.risk_factors.negative_reviews == 5
        assert provider.performance_metrics.average_rating == 1.0
        assert provider.mitigation_measures.limited_job_value is True

    @pytest.mark.asyncio
    async def test_good_review_never_lowers_risk(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        for _ in range(3):
            await provider_service.apply_penalty(provider.id, "admin-1")

        updated = await provider_service.record_review(provider.id, 5, "customer-1")

        assert updated.risk_level == RiskLevel.HIGH


class TestViews:
    @pytest.mark.asyncio
    async def test_owner_and_admin_only(
        self,
        provider_service: ProviderService,
        provider_profile: Profile,
        provider: ProviderProfile,
    ) -> None:
        assert (await provider_service.view(provider.id, "provider-1", UserRole.PROVIDER)).id == provider.id
        assert (await provider_service.view(provider.id, "admin-1", UserRole.ADMIN)).id == provider.id

        with pytest.raises(PermissionDeniedError):
            await provider_service.view(provider.id, "customer-1", UserRole.CUSTOMER)
        with pytest.raises(PermissionDeniedError):
            await provider_service.view_by_profile(provider_profile.id, "customer-1", UserRole.CUSTOMER)

    @pytest.mark.asyncio
    async def test_owner_user_id(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        assert await provider_service.owner_user_id(provider) == "provider-1"


class TestFinders:
    @pytest.mark.asyncio
    async def test_find_high_risk(
        self, profile_service: ProfileService, provider_service: ProviderService
    ) -> None:
        risky = await make_provider(profile_service, provider_service, "prov-a")
        await make_provider(profile_service, provider_service, "prov-b")
        for _ in range(3):
            await provider_service.apply_penalty(risky.id, "admin-1")

        page = await provider_service.find_high_risk(Pagination())

        assert [p.id for p in page.items] == [risky.id]

    @pytest.mark.asyncio
    async def test_find_available(
        self, profile_service: ProfileService, provider_service: ProviderService
    ) -> None:
        available = await make_provider(profile_service, provider_service, "prov-a")
        await make_provider(profile_service, provider_service, "prov-b")
        await provider_service.toggle_availability(available.id, "prov-a", UserRole.PROVIDER)

        page = await provider_service.find_available(Pagination())

        assert page.total == 1
        assert page.items[0].id == available.id

    @pytest.mark.asyncio
    async def test_find_by_status(
        self, provider_service: ProviderService, provider: ProviderProfile
    ) -> None:
        page = await provider_service.find_by_status(
            ProviderOperationalStatus.PROBATIONARY, Pagination()
        )
        assert page.total == 1

        assert (await provider_service.find_by_status(ProviderOperationalStatus.ACTIVE, Pagination())).total == 0
