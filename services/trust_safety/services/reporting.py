"""
Aggregation Reporters
=====================

Read-only rollups over lists of entities for administrative views.

Soft-deleted entities are excluded unless ``include_deleted`` is set.

Version: 0.1.0
"""

from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any, TypeVar

from services.trust_safety.models.base import RiskLevel
from services.trust_safety.models.client import ClientProfile
from services.trust_safety.models.provider import ProviderOperationalStatus, ProviderProfile
from services.trust_safety.models.warning import SeverityLevel, WarningRecord, WarningStatus
from services.trust_safety.services.scoring import user_warning_risk_level


T = TypeVar("T")

RECENT_WINDOW_DAYS = 30
TOP_ISSUERS_LIMIT = 10


def _live(items: Iterable[T], include_deleted: bool) -> list[T]:
    if include_deleted:
        return list(items)
    return [item for item in items if not getattr(item, "is_deleted", False)]


def _key(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def count_by(items: Iterable[T], key: Callable[[T], Any]) -> dict[Any, int]:
    """Count items per key, most common first."""
    counts = Counter(_key(key(item)) for item in items)
    return dict(counts.most_common())


def days_to_resolution(warning: WarningRecord) -> float | None:
    """Days between issue and resolution, None while unresolved."""
    if warning.resolved_at is None:
        return None
    return (warning.resolved_at - warning.issued_at).total_seconds() / 86400


def average_days_to_resolution(warnings: Iterable[WarningRecord]) -> float | None:
    durations = [d for d in (days_to_resolution(w) for w in warnings) if d is not None]
    if not durations:
        return None
    return round(sum(durations) / len(durations), 2)


# =============================================================================
# Warnings
# =============================================================================


def warning_analytics(warnings: list[WarningRecord], now: datetime) -> dict[str, Any]:
    """Overview, distributions, top issuers and resolution times."""
    recent_cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)
    acknowledged = sum(1 for w in warnings if w.acknowledged_at is not None)

    issuers = Counter(w.issued_by for w in warnings)
    resolution = {
        severity.value: {
            "avg_days_to_resolve": average_days_to_resolution(
                w for w in warnings if w.severity == severity
            ),
            "count": sum(1 for w in warnings if w.severity == severity),
        }
        for severity in SeverityLevel
    }

    return {
        "overview": {
            "total": len(warnings),
            "active": sum(1 for w in warnings if w.status == WarningStatus.ACTIVE and w.is_active),
            "resolved": sum(1 for w in warnings if w.status == WarningStatus.RESOLVED),
            "expired": sum(1 for w in warnings if w.status == WarningStatus.EXPIRED),
            "recent_warnings": sum(1 for w in warnings if w.issued_at >= recent_cutoff),
        },
        "category_distribution": count_by(warnings, lambda w: w.category),
        "severity_distribution": count_by(warnings, lambda w: w.severity),
        "acknowledgment_status": {
            "acknowledged": acknowledged,
            "unacknowledged": len(warnings) - acknowledged,
        },
        "top_issuers": [
            {"issuer_id": issuer, "count": count}
            for issuer, count in issuers.most_common(TOP_ISSUERS_LIMIT)
        ],
        "resolution_analysis": resolution,
    }


def user_warning_summary(
    user_id: str,
    warnings: list[WarningRecord],
    now: datetime,
    profile_count: int = 0,
) -> dict[str, Any]:
    """Counts, breakdowns and summary risk for one user's warnings."""
    active = [w for w in warnings if w.status == WarningStatus.ACTIVE and w.is_active]
    severe = sum(1 for w in active if w.severity == SeverityLevel.SEVERE)
    major = sum(1 for w in active if w.severity == SeverityLevel.MAJOR)
    recent_cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)

    return {
        "user_id": user_id,
        "counts": {
            "total": len(warnings),
            "active": len(active),
            "resolved": sum(1 for w in warnings if w.status == WarningStatus.RESOLVED),
            "profile_count": profile_count,
        },
        "category_breakdown": count_by(warnings, lambda w: w.category),
        "severity_breakdown": count_by(warnings, lambda w: w.severity),
        "recent_warnings": sum(1 for w in warnings if w.issued_at >= recent_cutoff),
        "risk_level": user_warning_risk_level(len(active), severe, major).value,
    }


def warning_summary(warnings: list[WarningRecord]) -> dict[str, Any]:
    """Small summary attached to paginated warning listings."""
    return {
        "by_status": count_by(warnings, lambda w: w.status),
        "by_severity": count_by(warnings, lambda w: w.severity),
        "unacknowledged": sum(1 for w in warnings if w.acknowledged_at is None),
    }


# =============================================================================
# Providers
# =============================================================================


def overdue_assessments(
    providers: list[ProviderProfile],
    now: datetime,
    include_deleted: bool = False,
) -> list[ProviderProfile]:
    """Providers whose next assessment date has passed, most overdue first."""
    overdue = [p for p in _live(providers, include_deleted) if p.is_assessment_overdue(now)]
    return sorted(overdue, key=lambda p: p.next_assessment_date)  # type: ignore[arg-type,return-value]


def top_rated_providers(
    providers: list[ProviderProfile],
    limit: int = 10,
    include_deleted: bool = False,
) -> list[ProviderProfile]:
    ranked = sorted(
        _live(providers, include_deleted),
        key=lambda p: (p.performance_metrics.average_rating, p.performance_metrics.total_jobs),
        reverse=True,
    )
    return ranked[:limit]


def provider_statistics(
    providers: list[ProviderProfile],
    now: datetime,
    include_deleted: bool = False,
) -> dict[str, Any]:
    live = _live(providers, include_deleted)
    by_status = count_by(live, lambda p: p.operational_status)
    by_risk = count_by(live, lambda p: p.risk_level)
    available = sum(1 for p in live if p.is_currently_available or p.is_always_available)
    overdue = len(overdue_assessments(live, now, include_deleted=True))

    return {
        "total": len(live),
        "by_status": {s.value: by_status.get(s.value, 0) for s in ProviderOperationalStatus},
        "by_risk_level": {r.value: by_risk.get(r.value, 0) for r in RiskLevel},
        "availability": {"available": available, "unavailable": len(live) - available},
        "assessments": {"overdue": overdue, "up_to_date": len(live) - overdue},
        "total_penalties": sum(p.penalties_count for p in live),
    }


# =============================================================================
# Clients
# =============================================================================


def client_statistics(clients: list[ClientProfile], include_deleted: bool = False) -> dict[str, Any]:
    live = _live(clients, include_deleted)
    by_risk = count_by(live, lambda c: c.risk_level)
    average_trust = round(sum(c.trust_score for c in live) / len(live), 2) if live else None

    return {
        "total": len(live),
        "by_risk_level": {r.value: by_risk.get(r.value, 0) for r in RiskLevel},
        "by_loyalty_tier": count_by(live, lambda c: c.loyalty_tier),
        "average_trust_score": average_trust,
        "suspended": sum(1 for c in live if c.is_suspended),
        "fully_verified": sum(1 for c in live if c.verified_count == 3),
        "total_bookings": sum(c.total_bookings for c in live),
        "total_spent": round(sum(c.total_spent for c in live), 2),
    }
