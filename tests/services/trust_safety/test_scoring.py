"""
Scoring Tests
=============

Tests for completeness, client, provider and warning risk scoring.

Version: 0.1.0
"""

import pytest

from services.trust_safety.models.base import RiskLevel, max_risk
from services.trust_safety.models.profile import (
    ContactDetails,
    IdDetails,
    Location,
    Profile,
)
from services.trust_safety.models.provider import PerformanceMetrics, RiskFactors
from services.trust_safety.models.warning import SeverityLevel, WarningCategory
from services.trust_safety.services.scoring import (
    add_rating,
    booking_rates,
    clamp,
    client_risk_level,
    client_risk_points,
    completeness,
    missing_profile_fields,
    penalty_risk_level,
    provider_performance_risk_score,
    provider_risk_level,
    provider_risk_score,
    reliability_score,
    trust_score_to_risk_level,
    user_warning_risk_level,
    verification_level,
    warning_risk_level,
)


# =============================================================================
# Completeness
# =============================================================================


class TestCompleteness:
    """Tests for profile completeness."""

    def test_empty_profile_scores_zero(self) -> None:
        profile = Profile(user_id="u1")

        assert completeness(profile) == 0
        assert len(missing_profile_fields(profile)) == 4

    def test_full_profile_scores_hundred(self) -> None:
        profile = Profile(
            user_id="u1",
            bio="Electrician in Kumasi",
            location=Location(ghana_post_gps="AK-4839-2211"),
            contact_details=ContactDetails(primary_contact="0241234567"),
            id_details=IdDetails(id_number="GHA-123456789-0"),
        )

        assert completeness(profile) == 100
        assert missing_profile_fields(profile) == []

    def test_blank_string_counts_as_missing(self) -> None:
        profile = Profile(user_id="u1", bio="   ")

        assert completeness(profile) == 0
        assert "bio" in missing_profile_fields(profile)

    def test_monotonic_and_bounded(self) -> None:
        """Filling one more tracked field never lowers the score."""
        steps = [
            {},
            {"bio": "Hello"},
            {"location": Location(ghana_post_gps="GA-1234-5678")},
            {"contact_details": ContactDetails(primary_contact="+233241234567")},
            {"id_details": IdDetails(id_number="X1")},
        ]
        data: dict = {"user_id": "u1"}
        previous = -1
        for step in steps:
            data.update(step)
            score = completeness(Profile(**data))
            assert 0 <= score <= 100
            assert score >= previous
            previous = score
        assert previous == 100

    def test_works_on_raw_documents(self) -> None:
        assert completeness({"bio": "x", "location": {"ghana_post_gps": "AK-1111-2222"}}) == 50


# =============================================================================
# Client risk
# =============================================================================


class TestClientRisk:
    """Tests for client trust and risk scoring."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (100, RiskLevel.LOW),
            (80, RiskLevel.LOW),
            (79.9, RiskLevel.MEDIUM),
            (60, RiskLevel.MEDIUM),
            (59, RiskLevel.HIGH),
            (30, RiskLevel.HIGH),
            (29, RiskLevel.CRITICAL),
            (0, RiskLevel.CRITICAL),
        ],
    )
    def test_trust_score_thresholds(self, score: float, expected: RiskLevel) -> None:
        assert trust_score_to_risk_level(score) == expected

    def test_trust_score_risk_is_monotonic(self) -> None:
        """Lowering the trust score never yields a safer level."""
        previous = RiskLevel.LOW
        for score in range(100, -1, -1):
            level = trust_score_to_risk_level(score)
            assert level.rank >= previous.rank
            previous = level

    def test_high_trust_unverified_client_is_low(self) -> None:
        # 3 missing verifications add 18 points, below the medium bucket
        assert client_risk_points(85, 0, 0, 0, 0) == 18
        assert client_risk_level(85, 0, 0, 0, 0) == RiskLevel.LOW

    def test_critical_trust_pins_level(self) -> None:
        assert client_risk_level(25, 0, 0, 0, 3) == RiskLevel.CRITICAL

    def test_client_level_monotonic_in_trust(self) -> None:
        previous = RiskLevel.LOW
        for score in range(100, -1, -5):
            level = client_risk_level(score, 1, 5, 10, 1)
            assert level.rank >= previous.rank
            previous = level

    def test_points_accumulate(self) -> None:
        # 20 (trust<50) + 20 (2 warnings) + 25 (disputes) + 25 (cancels) + 0 + 10 (factors)
        assert client_risk_points(45, 2, 20, 30, 3, 2) == 100
        assert client_risk_level(45, 2, 20, 30, 3, 2) == RiskLevel.CRITICAL

    def test_verification_penalty_capped(self) -> None:
        assert client_risk_points(90, 0, 0, 0, 0) == 18
        assert client_risk_points(90, 0, 0, 0, 2) == 6

    def test_booking_rates(self) -> None:
        assert booking_rates(0, 0, 0) == (0.0, 0.0)
        assert booking_rates(10, 3, 1) == (30.0, 10.0)

    def test_verification_level(self) -> None:
        assert verification_level(0) == "none"
        assert verification_level(2) == "partial"
        assert verification_level(3) == "full"

    def test_reliability_score_bounds(self) -> None:
        assert reliability_score(100, 3, 5, 0, 0) == 100
        assert reliability_score(0, 0, 0, 100, 100) == 0


# =============================================================================
# Provider risk
# =============================================================================


class TestProviderRisk:
    """Tests for provider risk scoring."""

    def test_new_provider_is_medium(self) -> None:
        score = provider_risk_score(RiskFactors())

        assert score == 20
        assert provider_risk_level(score) == RiskLevel.MEDIUM

    def test_factor_caps(self) -> None:
        factors = RiskFactors(
            new_provider=True,
            low_completion_rate=True,
            high_cancellation_rate=True,
            recent_complaints=10,
            verification_gaps=["id", "address", "phone", "email"],
            negative_reviews=20,
        )

        assert provider_risk_score(factors) == 100
        assert provider_risk_level(100) == RiskLevel.CRITICAL

    def test_established_clean_provider_is_low(self) -> None:
        assert provider_risk_score(RiskFactors(new_provider=False)) == 0
        assert provider_risk_level(0) == RiskLevel.LOW

    @pytest.mark.parametrize(
        "count,expected",
        [
            (0, RiskLevel.LOW),
            (1, RiskLevel.MEDIUM),
            (2, RiskLevel.MEDIUM),
            (3, RiskLevel.HIGH),
            (4, RiskLevel.HIGH),
            (5, RiskLevel.CRITICAL),
            (9, RiskLevel.CRITICAL),
        ],
    )
    def test_penalty_floor(self, count: int, expected: RiskLevel) -> None:
        assert penalty_risk_level(count) == expected

    def test_performance_risk_score(self) -> None:
        good = PerformanceMetrics(
            completion_rate=95, average_rating=4.8, total_jobs=50, cancellation_rate=2
        )
        bad = PerformanceMetrics(
            completion_rate=50,
            average_rating=2.0,
            total_jobs=2,
            cancellation_rate=30,
            dispute_rate=20,
        )

        assert provider_performance_risk_score(good, 0) == 0
        assert provider_performance_risk_score(bad, 10) == 100


# =============================================================================
# Warning risk
# =============================================================================


class TestWarningRisk:
    """Tests for warning risk levels."""

    def test_minor_generic_is_low(self) -> None:
        assert warning_risk_level(SeverityLevel.MINOR, WarningCategory.QUALITY_ISSUE) == RiskLevel.LOW

    def test_severe_safety_is_critical(self) -> None:
        assert (
            warning_risk_level(SeverityLevel.SEVERE, WarningCategory.SAFETY_CONCERN)
            == RiskLevel.CRITICAL
        )

    def test_major_privacy_is_medium(self) -> None:
        # 3 x 1.5 = 4.5
        assert (
            warning_risk_level(SeverityLevel.MAJOR, WarningCategory.DATA_PRIVACY_VIOLATION)
            == RiskLevel.MEDIUM
        )

    def test_user_summary_levels(self) -> None:
        assert user_warning_risk_level(0, 0, 0) == RiskLevel.LOW
        assert user_warning_risk_level(1, 0, 1) == RiskLevel.MEDIUM
        assert user_warning_risk_level(1, 1, 0) == RiskLevel.HIGH
        assert user_warning_risk_level(2, 2, 0) == RiskLevel.CRITICAL


class TestHelpers:
    def test_clamp(self) -> None:
        assert clamp(-5) == 0
        assert clamp(150) == 100
        assert clamp(7, 0, 5) == 5

    def test_max_risk(self) -> None:
        assert max_risk(RiskLevel.LOW, RiskLevel.HIGH, RiskLevel.MEDIUM) == RiskLevel.HIGH
        assert RiskLevel.max_of(RiskLevel.CRITICAL, RiskLevel.LOW) == RiskLevel.CRITICAL

    def test_add_rating(self) -> None:
        assert add_rating(0, 0, 4) == (4.0, 1)
        assert add_rating(4.0, 1, 5) == (4.5, 2)
        assert add_rating(4.5, 2, 1) == (3.33, 3)
