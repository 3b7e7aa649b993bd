"""
Score Primitives
================

Pure functions mapping raw counters to bounded scores and risk levels.

Scores:
- completeness: 25 points each for bio, location code, primary contact, id number
- client risk: trust tiers + warnings + dispute/cancel rates + missing verification
- provider risk: weighted risk factor sum, capped at 100
- warning risk: severity points x category multiplier

Every function is total on bounded inputs. Callers clamp out-of-range
values with ``clamp`` before scoring.

Version: 0.1.0
"""

from typing import Any

from services.trust_safety.models.base import RiskLevel
from services.trust_safety.models.provider import PerformanceMetrics, RiskFactors
from services.trust_safety.models.warning import SeverityLevel, WarningCategory


# =============================================================================
# Helpers
# =============================================================================


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Bound a value to [low, high]."""
    return max(low, min(high, value))


def _rate(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(part / total * 100, 2)


def booking_rates(total: int, cancelled: int, disputed: int) -> tuple[float, float]:
    """Cancellation and dispute rates as percentages of total bookings."""
    return _rate(cancelled, total), _rate(disputed, total)


def completion_rate(total: int, completed: int) -> float:
    return _rate(completed, total)


def add_rating(average: float, count: int, rating: int) -> tuple[float, int]:
    """Fold one rating into a running average; returns the new average and count."""
    total = count + 1
    return round((average * count + rating) / total, 2), total


# =============================================================================
# Profile completeness
# =============================================================================


# Field path -> points. Paths are dotted into the profile model.
COMPLETENESS_WEIGHTS: dict[str, int] = {
    "bio": 25,
    "location.ghana_post_gps": 25,
    "contact_details.primary_contact": 25,
    "id_details.id_number": 25,
}


def _resolve(obj: Any, path: str) -> Any:
    for part in path.split("."):
        if obj is None:
            return None
        obj = obj.get(part) if isinstance(obj, dict) else getattr(obj, part, None)
    return obj


def _populated(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None


def missing_profile_fields(profile: Any) -> list[str]:
    """Tracked completeness fields that are still empty."""
    return [path for path in COMPLETENESS_WEIGHTS if not _populated(_resolve(profile, path))]


def completeness(profile: Any) -> int:
    """Completeness score in [0, 100]."""
    missing = set(missing_profile_fields(profile))
    score = sum(points for path, points in COMPLETENESS_WEIGHTS.items() if path not in missing)
    return int(clamp(score))


# =============================================================================
# Client risk
# =============================================================================


def trust_score_to_risk_level(score: float) -> RiskLevel:
    """Fixed trust thresholds: >=80 low, >=60 medium, >=30 high, else critical."""
    if score >= 80:
        return RiskLevel.LOW
    if score >= 60:
        return RiskLevel.MEDIUM
    if score >= 30:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def verification_level(verified_count: int) -> str:
    """Summarize how many of phone/email/address are verified."""
    if verified_count >= 3:
        return "full"
    if verified_count > 0:
        return "partial"
    return "none"


def client_risk_points(
    trust_score: float,
    warnings_count: int,
    dispute_rate: float,
    cancel_rate: float,
    verified_count: int,
    risk_factor_count: int = 0,
) -> int:
    """Accumulated client risk points before bucketing."""
    points = 0

    # Trust score tiers, inverse relationship
    if trust_score < 30:
        points += 30
    elif trust_score < 50:
        points += 20
    elif trust_score < 70:
        points += 10

    points += 10 * max(warnings_count, 0)

    if dispute_rate >= 20:
        points += 25
    elif dispute_rate >= 10:
        points += 15
    elif dispute_rate >= 5:
        points += 10

    if cancel_rate >= 30:
        points += 25
    elif cancel_rate >= 20:
        points += 15
    elif cancel_rate >= 10:
        points += 10

    missing_verifications = 3 - max(0, min(verified_count, 3))
    points += min(6 * missing_verifications, 20)

    points += 5 * max(risk_factor_count, 0)
    return points


def client_risk_level(
    trust_score: float,
    warnings_count: int,
    dispute_rate: float,
    cancel_rate: float,
    verified_count: int,
    risk_factor_count: int = 0,
) -> RiskLevel:
    """
    Client risk bucket at 20/40/60 points.

    A trust score in the critical band pins the result at critical, so the
    level never reads safer than the trust score alone.
    """
    trust_level = trust_score_to_risk_level(trust_score)
    if trust_level is RiskLevel.CRITICAL:
        return RiskLevel.CRITICAL

    points = client_risk_points(
        trust_score, warnings_count, dispute_rate, cancel_rate, verified_count, risk_factor_count
    )
    if points >= 60:
        return RiskLevel.CRITICAL
    if points >= 40:
        return RiskLevel.HIGH
    if points >= 20:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def reliability_score(
    completion: float,
    verified_count: int,
    average_rating: float,
    cancel_rate: float,
    dispute_rate: float,
) -> float:
    """Weighted client reliability in [0, 100]."""
    score = completion * 0.4
    score += (min(verified_count, 3) / 3) * 100 * 0.25
    if average_rating > 0:
        score += (average_rating / 5) * 100 * 0.2
    low_problem_rate = clamp(100 - cancel_rate - dispute_rate)
    score += low_problem_rate * 0.15
    return round(clamp(score), 2)


# =============================================================================
# Provider risk
# =============================================================================


def provider_risk_score(factors: RiskFactors) -> int:
    """Weighted risk factor sum, capped at 100."""
    score = 0
    if factors.new_provider:
        score += 20
    if factors.low_completion_rate:
        score += 25
    if factors.high_cancellation_rate:
        score += 20
    score += min(5 * factors.recent_complaints, 20)
    score += min(10 * len(factors.verification_gaps), 30)
    score += min(3 * factors.negative_reviews, 15)
    return min(score, 100)


def provider_risk_level(score: int) -> RiskLevel:
    if score >= 70:
        return RiskLevel.CRITICAL
    if score >= 45:
        return RiskLevel.HIGH
    if score >= 20:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def penalty_risk_level(penalties_count: int) -> RiskLevel:
    """Escalation floor implied by accumulated penalties."""
    if penalties_count >= 5:
        return RiskLevel.CRITICAL
    if penalties_count >= 3:
        return RiskLevel.HIGH
    if penalties_count >= 1:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def provider_performance_risk_score(metrics: PerformanceMetrics, penalties_count: int) -> int:
    """Metric based provider risk score in [0, 100]."""
    score = 0

    if metrics.completion_rate < 70:
        score += 25
    elif metrics.completion_rate < 85:
        score += 15

    if metrics.cancellation_rate > 20:
        score += 20
    elif metrics.cancellation_rate > 10:
        score += 10

    if metrics.dispute_rate > 15:
        score += 20
    elif metrics.dispute_rate > 5:
        score += 10

    if metrics.average_rating < 3.0:
        score += 20
    elif metrics.average_rating < 3.5:
        score += 10

    if penalties_count > 0:
        score += min(5 * penalties_count, 25)

    if metrics.total_jobs < 5:
        score += 15
    elif metrics.total_jobs < 10:
        score += 10

    return min(score, 100)


# =============================================================================
# Warning risk
# =============================================================================


SEVERITY_POINTS: dict[SeverityLevel, int] = {
    SeverityLevel.MINOR: 1,
    SeverityLevel.MAJOR: 3,
    SeverityLevel.SEVERE: 5,
}

CATEGORY_MULTIPLIERS: dict[WarningCategory, float] = {
    WarningCategory.SAFETY_CONCERN: 2,
    WarningCategory.THEFT_OR_FRAUD: 2,
    WarningCategory.HARASSMENT: 2,
    WarningCategory.SUBSTANCE_ABUSE: 2,
    WarningCategory.DATA_PRIVACY_VIOLATION: 1.5,
    WarningCategory.UNAUTHORIZED_ACCESS: 1.5,
}


def warning_risk_level(severity: SeverityLevel, category: WarningCategory) -> RiskLevel:
    """Severity points times category multiplier, bucketed at 3/5/8."""
    total = SEVERITY_POINTS[SeverityLevel(severity)] * CATEGORY_MULTIPLIERS.get(
        WarningCategory(category), 1
    )
    if total >= 8:
        return RiskLevel.CRITICAL
    if total >= 5:
        return RiskLevel.HIGH
    if total >= 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def user_warning_risk_level(active_count: int, severe_count: int, major_count: int) -> RiskLevel:
    """Summary risk for a user from their active warning mix."""
    if active_count == 0:
        return RiskLevel.LOW
    if severe_count >= 2 or active_count >= 10:
        return RiskLevel.CRITICAL
    if severe_count >= 1 or major_count >= 3 or active_count >= 5:
        return RiskLevel.HIGH
    if major_count >= 1 or active_count >= 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
