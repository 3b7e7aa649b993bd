"""
Provider Service
================

Lifecycle of provider profiles and their risk block.

Risk rules:
- Penalties and metric updates only ever escalate risk and tighten measures
- An explicit risk assessment is the only path that lowers the risk level
- Risk level and mitigation measures are recomputed together on every
  risk-affecting write so they stay consistent with the risk factors

Version: 0.1.0
"""

from datetime import datetime, timedelta
from typing import Any

from services.trust_safety.models.base import (
    BulkItemResult,
    BulkOperationResult,
    RiskLevel,
    max_risk,
    parse_model,
    utcnow,
)
from services.trust_safety.models.profile import Profile
from services.trust_safety.models.provider import (
    DEFAULT_ASSESSMENT_HORIZON_DAYS,
    MAX_ASSESSMENT_HORIZON_DAYS,
    MIN_ASSESSMENT_HORIZON_DAYS,
    MitigationMeasures,
    PerformanceMetrics,
    PerformanceMetricsUpdate,
    ProviderOperationalStatus,
    ProviderProfile,
    ProviderProfileCreate,
    ProviderRiskReport,
    RiskAssessmentUpdate,
    RiskFactors,
    Weekday,
    WorkingHours,
)
from services.trust_safety.models.review import NEGATIVE_REVIEW_MAX_RATING, check_rating
from services.trust_safety.services import transitions
from services.trust_safety.services.permissions import (
    Entity,
    ensure_owner_or_admin,
    filter_update,
)
from services.trust_safety.services.repository import Repository
from services.trust_safety.services.reporting import provider_statistics
from services.trust_safety.services.scoring import (
    add_rating,
    clamp,
    penalty_risk_level,
    provider_performance_risk_score,
    provider_risk_level,
    provider_risk_score,
)
from shared.auth.roles import UserRole
from shared.database.mongodb import Collections
from shared.exceptions import (
    AlreadyInStateError,
    NotFoundError,
    TrustSafetyError,
    ValidationError,
)
from shared.logging import get_logger
from shared.models import PaginatedResponse, Pagination
from shared.store import DESCENDING, DocumentStore


logger = get_logger(__name__)

# Thresholds re-deriving risk factor flags from performance metrics
LOW_COMPLETION_RATE_THRESHOLD = 70
HIGH_CANCELLATION_RATE_THRESHOLD = 20
NEW_PROVIDER_JOB_THRESHOLD = 5

_RATE_FIELDS = ("completion_rate", "cancellation_rate", "dispute_rate", "client_retention_rate")


def _horizon(days: int) -> int:
    if not MIN_ASSESSMENT_HORIZON_DAYS <= days <= MAX_ASSESSMENT_HORIZON_DAYS:
        raise ValidationError(
            f"Assessment horizon must be between {MIN_ASSESSMENT_HORIZON_DAYS} "
            f"and {MAX_ASSESSMENT_HORIZON_DAYS} days",
            details={"days": days},
        )
    return days


def clamp_metrics(current: PerformanceMetrics, update: PerformanceMetricsUpdate) -> PerformanceMetrics:
    """Apply metric updates, clamping rates to [0,100] and rating to [0,5]."""
    data = current.model_dump()
    for name, value in update.model_dump(exclude_none=True).items():
        if name in _RATE_FIELDS:
            value = clamp(value)
        elif name == "average_rating":
            value = clamp(value, 0, 5)
        else:
            value = max(value, 0)
        data[name] = value
    return PerformanceMetrics(**data)


def factors_from_metrics(factors: RiskFactors, metrics: PerformanceMetrics) -> RiskFactors:
    return factors.model_copy(
        update={
            "new_provider": metrics.total_jobs < NEW_PROVIDER_JOB_THRESHOLD,
            "low_completion_rate": metrics.completion_rate < LOW_COMPLETION_RATE_THRESHOLD,
            "high_cancellation_rate": metrics.cancellation_rate > HIGH_CANCELLATION_RATE_THRESHOLD,
        }
    )


def with_escalated_risk(provider: ProviderProfile, factors: RiskFactors) -> ProviderProfile:
    """Rescore factors and raise level and measures without ever lowering them."""
    score = provider_risk_score(factors)
    level = max_risk(
        provider.risk_level,
        provider_risk_level(score),
        penalty_risk_level(provider.penalties_count),
    )
    measures = transitions.merge_mitigation(
        provider.mitigation_measures, transitions.mitigation_for_level(level)
    )
    return provider.model_copy(
        update={
            "risk_factors": factors,
            "risk_score": score,
            "risk_level": level,
            "mitigation_measures": measures,
        }
    )


def assess(
    provider: ProviderProfile,
    update: RiskAssessmentUpdate,
    actor_id: str,
    now: datetime,
) -> ProviderProfile:
    """
    Apply an explicit risk assessment.

    With an explicit level the result is the stricter of that level and the
    factor-derived level, which may be lower than the current one. Without it
    the penalty floor still applies.
    """
    factors = provider.risk_factors
    if update.risk_factors is not None:
        factors = factors.model_copy(update=update.risk_factors.model_dump(exclude_none=True))

    score = provider_risk_score(factors)
    factor_level = provider_risk_level(score)
    if update.risk_level is not None:
        level = max_risk(update.risk_level, factor_level)
    else:
        level = max_risk(factor_level, penalty_risk_level(provider.penalties_count))

    # A lowered level relaxes measures back to that level's baseline
    if level.rank < provider.risk_level.rank:
        measures = transitions.mitigation_for_level(level)
    else:
        measures = provider.mitigation_measures
    if update.mitigation_measures is not None:
        measures = MitigationMeasures(
            **{**measures.model_dump(), **update.mitigation_measures.model_dump(exclude_none=True)}
        )
    measures = transitions.merge_mitigation(measures, transitions.mitigation_for_level(level))

    return provider.model_copy(
        update={
            "risk_factors": factors,
            "risk_score": score,
            "risk_level": level,
            "mitigation_measures": measures,
            "last_risk_assessment_date": now,
            "next_assessment_date": now + timedelta(days=update.next_assessment_days),
            "risk_assessed_by": actor_id,
            "risk_assessment_notes": update.notes
            if update.notes is not None
            else provider.risk_assessment_notes,
        }
    )


class ProviderService:
    """Provider lifecycle and risk operations."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self.repo: Repository[ProviderProfile] = Repository(
            Collections.PROVIDER_PROFILES, ProviderProfile, "Provider profile", store
        )
        self.profiles: Repository[Profile] = Repository(
            Collections.PROFILES, Profile, "Profile", store
        )

    async def owner_user_id(self, provider: ProviderProfile) -> str:
        """User id owning a provider profile, for ownership checks and notifications."""
        profile = await self.profiles.get(provider.profile_id, include_deleted=True)
        return profile.user_id

    async def _check_owner(self, provider_id: str, actor_id: str, role: UserRole) -> ProviderProfile:
        provider = await self.repo.get(provider_id)
        owner_id = await self.owner_user_id(provider)
        ensure_owner_or_admin(owner_id, actor_id, role, "provider profile")
        return provider

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create(
        self,
        profile_id: str,
        data: ProviderProfileCreate,
        actor_id: str,
        role: UserRole,
    ) -> ProviderProfile:
        """
        Create the provider profile for a provider-role profile.

        Raises:
            NotFoundError: Profile absent or soft-deleted
            ValidationError: Profile role is not provider
            ConflictError: Profile already has a provider profile
        """
        profile = await self.profiles.get(profile_id)
        ensure_owner_or_admin(profile.user_id, actor_id, role, "profile")
        if profile.role != UserRole.PROVIDER:
            raise ValidationError(
                "Provider profiles require a provider-role profile",
                details={"profile_id": profile_id, "role": profile.role.value},
            )

        provider = parse_model(
            ProviderProfile,
            {"profile_id": profile_id, **data.model_dump(exclude_unset=True)},
        )
        provider = with_escalated_risk(provider, provider.risk_factors)
        await self.repo.insert(provider)

        logger.info(
            "provider_profile_created",
            provider_id=provider.id,
            profile_id=profile_id,
            risk_level=provider.risk_level.value,
        )
        return provider

    async def get(self, provider_id: str) -> ProviderProfile:
        return await self.repo.get(provider_id)

    async def get_by_profile(self, profile_id: str) -> ProviderProfile:
        provider = await self.repo.find_one({"profile_id": profile_id})
        if provider is None:
            raise NotFoundError("Provider profile", profile_id)
        return provider

    async def view(self, provider_id: str, actor_id: str, role: UserRole) -> ProviderProfile:
        """Full provider document; risk and penalty fields are for the owner and admins."""
        return await self._check_owner(provider_id, actor_id, role)

    async def view_by_profile(self, profile_id: str, actor_id: str, role: UserRole) -> ProviderProfile:
        provider = await self.get_by_profile(profile_id)
        ensure_owner_or_admin(await self.owner_user_id(provider), actor_id, role, "provider profile")
        return provider

    async def update(
        self,
        provider_id: str,
        changes: dict[str, Any],
        actor_id: str,
        role: UserRole,
    ) -> ProviderProfile:
        allowed = filter_update(Entity.PROVIDER, role, changes)
        await self._check_owner(provider_id, actor_id, role)
        provider = await self.repo.mutate(provider_id, lambda p: p.with_changes(allowed))
        logger.info("provider_profile_updated", provider_id=provider_id, fields=sorted(allowed))
        return provider

    async def soft_delete(self, provider_id: str, actor_id: str, role: UserRole) -> ProviderProfile:
        await self._check_owner(provider_id, actor_id, role)

        def apply(provider: ProviderProfile) -> ProviderProfile:
            return provider.model_copy(
                update={
                    "is_deleted": True,
                    "deleted_at": utcnow(),
                    "deleted_by": actor_id,
                    "is_currently_available": False,
                }
            )

        provider = await self.repo.mutate(provider_id, apply)
        logger.info("provider_profile_soft_deleted", provider_id=provider_id, deleted_by=actor_id)
        return provider

    # =========================================================================
    # Risk lifecycle
    # =========================================================================

    async def apply_penalty(
        self,
        provider_id: str,
        actor_id: str,
        reason: str | None = None,
    ) -> ProviderProfile:
        """Add one penalty and escalate risk at the 3 and 5 penalty thresholds."""

        def apply(provider: ProviderProfile) -> ProviderProfile:
            count = provider.penalties_count + 1
            level, measures = transitions.escalate_for_penalties(
                provider.risk_level, provider.mitigation_measures, count
            )
            return provider.model_copy(
                update={
                    "penalties_count": count,
                    "last_penalty_date": utcnow(),
                    "risk_level": level,
                    "mitigation_measures": measures,
                }
            )

        provider = await self.repo.mutate(provider_id, apply)
        logger.info(
            "penalty_applied",
            provider_id=provider_id,
            penalties_count=provider.penalties_count,
            risk_level=provider.risk_level.value,
            issued_by=actor_id,
            reason=reason,
        )
        return provider

    async def update_risk_assessment(
        self,
        provider_id: str,
        update: RiskAssessmentUpdate,
        actor_id: str,
    ) -> ProviderProfile:
        _horizon(update.next_assessment_days)
        provider = await self.repo.mutate(provider_id, lambda p: assess(p, update, actor_id, utcnow()))
        logger.info(
            "risk_assessment_updated",
            provider_id=provider_id,
            risk_level=provider.risk_level.value,
            risk_score=provider.risk_score,
            assessed_by=actor_id,
        )
        return provider

    async def schedule_next_assessment(
        self,
        provider_id: str,
        actor_id: str,
        days_from_now: int = DEFAULT_ASSESSMENT_HORIZON_DAYS,
    ) -> ProviderProfile:
        days = _horizon(days_from_now)
        provider = await self.repo.mutate(
            provider_id,
            lambda p: p.model_copy(
                update={"next_assessment_date": utcnow() + timedelta(days=days)}
            ),
        )
        logger.info(
            "assessment_scheduled",
            provider_id=provider_id,
            next_assessment_date=provider.next_assessment_date,
            scheduled_by=actor_id,
        )
        return provider

    async def bulk_update_risk_assessments(
        self,
        provider_ids: list[str],
        update: RiskAssessmentUpdate,
        actor_id: str,
    ) -> BulkOperationResult:
        """Assess each provider independently; one failure never aborts the batch."""
        results: list[BulkItemResult] = []
        for provider_id in provider_ids:
            try:
                await self.update_risk_assessment(provider_id, update, actor_id)
                results.append(BulkItemResult(id=provider_id, success=True))
            except TrustSafetyError as e:
                results.append(BulkItemResult(id=provider_id, success=False, reason=e.message))

        outcome = BulkOperationResult.from_results(results)
        logger.info(
            "bulk_risk_assessment_completed",
            total=outcome.total_processed,
            successful=outcome.successful,
            failed=outcome.failed,
        )
        return outcome

    async def update_performance_metrics(
        self,
        provider_id: str,
        update: PerformanceMetricsUpdate,
    ) -> ProviderProfile:
        def apply(provider: ProviderProfile) -> ProviderProfile:
            metrics = clamp_metrics(provider.performance_metrics, update)
            factors = factors_from_metrics(provider.risk_factors, metrics)
            return with_escalated_risk(
                provider.model_copy(update={"performance_metrics": metrics}), factors
            )

        provider = await self.repo.mutate(provider_id, apply)
        logger.info(
            "performance_metrics_updated",
            provider_id=provider_id,
            risk_level=provider.risk_level.value,
            risk_score=provider.risk_score,
        )
        return provider

    async def risk_report(self, provider_id: str) -> ProviderRiskReport:
        provider = await self.repo.get(provider_id)
        return ProviderRiskReport(
            provider_id=provider.id,
            risk_level=provider.risk_level,
            risk_score=provider.risk_score,
            performance_risk_score=provider_performance_risk_score(
                provider.performance_metrics, provider.penalties_count
            ),
            is_assessment_overdue=provider.is_assessment_overdue(utcnow()),
            last_risk_assessment_date=provider.last_risk_assessment_date,
            next_assessment_date=provider.next_assessment_date,
            risk_assessed_by=provider.risk_assessed_by,
            risk_factors=provider.risk_factors,
            mitigation_measures=provider.mitigation_measures,
            risk_assessment_notes=provider.risk_assessment_notes,
            penalties_count=provider.penalties_count,
            last_penalty_date=provider.last_penalty_date,
        )

    # =========================================================================
    # Reviews and complaints
    # =========================================================================

    async def _check_not_owner(self, provider_id: str, actor_id: str, action: str) -> None:
        provider = await self.repo.get(provider_id)
        if await self.owner_user_id(provider) == actor_id:
            raise ValidationError(
                f"Providers cannot {action} themselves", details={"provider_id": provider_id}
            )

    async def record_review(self, provider_id: str, rating: int, reviewer_id: str) -> ProviderProfile:
        """
        Fold a client rating into the provider's metrics.

        Ratings of 2 or less also count as negative reviews, which can
        escalate risk.

        Raises:
            ValidationError: Rating outside 1-5 or a provider rating themselves
        """
        check_rating(rating)
        await self._check_not_owner(provider_id, reviewer_id, "review")

        def apply(provider: ProviderProfile) -> ProviderProfile:
            metrics = provider.performance_metrics
            average, count = add_rating(metrics.average_rating, metrics.total_reviews, rating)
            metrics = metrics.model_copy(update={"average_rating": average, "total_reviews": count})
            factors = provider.risk_factors
            if rating <= NEGATIVE_REVIEW_MAX_RATING:
                factors = factors.model_copy(
                    update={"negative_reviews": factors.negative_reviews + 1}
                )
            return with_escalated_risk(
                provider.model_copy(update={"performance_metrics": metrics}), factors
            )

        provider = await self.repo.mutate(provider_id, apply)
        logger.info(
            "provider_review_recorded",
            provider_id=provider_id,
            rating=rating,
            average_rating=provider.performance_metrics.average_rating,
            risk_level=provider.risk_level.value,
            reviewer_id=reviewer_id,
        )
        return provider

    async def record_complaint(self, provider_id: str, reporter_id: str, reason: str) -> ProviderProfile:
        await self._check_not_owner(provider_id, reporter_id, "report")

        def apply(provider: ProviderProfile) -> ProviderProfile:
            factors = provider.risk_factors.model_copy(
                update={"recent_complaints": provider.risk_factors.recent_complaints + 1}
            )
            return with_escalated_risk(provider, factors)

        provider = await self.repo.mutate(provider_id, apply)
        logger.info(
            "provider_complaint_recorded",
            provider_id=provider_id,
            recent_complaints=provider.risk_factors.recent_complaints,
            risk_level=provider.risk_level.value,
            reporter_id=reporter_id,
            reason=reason,
        )
        return provider

    # =========================================================================
    # Operations
    # =========================================================================

    async def update_operational_status(
        self,
        provider_id: str,
        status: ProviderOperationalStatus,
        actor_id: str,
        reason: str | None = None,
    ) -> ProviderProfile:
        """Admin-directed status change; any transition is allowed and logged."""

        def apply(provider: ProviderProfile) -> ProviderProfile:
            if provider.operational_status == status:
                raise AlreadyInStateError(
                    f"Provider is already {status.value}",
                    details={"provider_id": provider_id},
                )
            change = transitions.record_status_change(provider, status, actor_id, utcnow(), reason)
            update: dict[str, Any] = {
                "operational_status": status,
                "status_history": [*provider.status_history, change],
            }
            if status == ProviderOperationalStatus.SUSPENDED:
                update["is_currently_available"] = False
            return provider.model_copy(update=update)

        provider = await self.repo.mutate(provider_id, apply)
        change = provider.status_history[-1]
        logger.info(
            "operational_status_changed",
            provider_id=provider_id,
            from_status=change.from_status.value,
            to_status=change.to_status.value,
            reason=reason,
            changed_by=actor_id,
        )
        return provider

    async def toggle_availability(self, provider_id: str, actor_id: str, role: UserRole) -> ProviderProfile:
        await self._check_owner(provider_id, actor_id, role)

        def apply(provider: ProviderProfile) -> ProviderProfile:
            if (
                not provider.is_currently_available
                and provider.operational_status == ProviderOperationalStatus.SUSPENDED
            ):
                raise ValidationError(
                    "Suspended providers cannot become available",
                    details={"provider_id": provider_id},
                )
            return provider.model_copy(
                update={"is_currently_available": not provider.is_currently_available}
            )

        provider = await self.repo.mutate(provider_id, apply)
        logger.info(
            "availability_toggled",
            provider_id=provider_id,
            is_currently_available=provider.is_currently_available,
        )
        return provider

    async def add_service_offering(
        self, provider_id: str, service_id: str, actor_id: str, role: UserRole
    ) -> ProviderProfile:
        await self._check_owner(provider_id, actor_id, role)

        def apply(provider: ProviderProfile) -> ProviderProfile:
            if service_id in provider.service_offerings:
                raise AlreadyInStateError(
                    "Service already offered", details={"service_id": service_id}
                )
            return provider.model_copy(
                update={"service_offerings": [*provider.service_offerings, service_id]}
            )

        return await self.repo.mutate(provider_id, apply)

    async def remove_service_offering(
        self, provider_id: str, service_id: str, actor_id: str, role: UserRole
    ) -> ProviderProfile:
        await self._check_owner(provider_id, actor_id, role)

        def apply(provider: ProviderProfile) -> ProviderProfile:
            if service_id not in provider.service_offerings:
                raise NotFoundError("Service offering", service_id)
            return provider.model_copy(
                update={
                    "service_offerings": [s for s in provider.service_offerings if s != service_id]
                }
            )

        return await self.repo.mutate(provider_id, apply)

    async def update_working_hours(
        self,
        provider_id: str,
        day: str,
        hours: WorkingHours,
        actor_id: str,
        role: UserRole,
    ) -> ProviderProfile:
        try:
            weekday = Weekday(day.strip().lower())
        except ValueError as e:
            raise ValidationError(
                f"Invalid day of week: {day}",
                details={"allowed": [d.value for d in Weekday]},
            ) from e

        await self._check_owner(provider_id, actor_id, role)
        return await self.repo.mutate(
            provider_id,
            lambda p: p.model_copy(update={"working_hours": {**p.working_hours, weekday: hours}}),
        )

    # =========================================================================
    # Finders
    # =========================================================================

    async def _page(
        self,
        filter: dict[str, Any],
        pagination: Pagination,
        sort: list[tuple[str, int]] | None = None,
    ) -> PaginatedResponse[ProviderProfile]:
        total = await self.repo.count(filter)
        items = await self.repo.find(
            filter,
            sort=sort or [("created_at", DESCENDING)],
            skip=pagination.offset,
            limit=pagination.limit,
        )
        return PaginatedResponse[ProviderProfile].build(items, total, pagination)

    async def find_by_status(
        self, status: ProviderOperationalStatus, pagination: Pagination
    ) -> PaginatedResponse[ProviderProfile]:
        return await self._page({"operational_status": status.value}, pagination)

    async def find_by_risk_level(
        self, level: RiskLevel, pagination: Pagination
    ) -> PaginatedResponse[ProviderProfile]:
        return await self._page({"risk_level": level.value}, pagination)

    async def find_available(self, pagination: Pagination) -> PaginatedResponse[ProviderProfile]:
        return await self._page(
            {
                "operational_status": {"$ne": ProviderOperationalStatus.SUSPENDED.value},
                "$or": [{"is_currently_available": True}, {"is_always_available": True}],
            },
            pagination,
            sort=[("performance_metrics.average_rating", DESCENDING)],
        )

    async def find_top_rated(self, limit: int = 10) -> list[ProviderProfile]:
        return await self.repo.find(
            {"operational_status": ProviderOperationalStatus.ACTIVE.value},
            sort=[
                ("performance_metrics.average_rating", DESCENDING),
                ("performance_metrics.total_jobs", DESCENDING),
            ],
            limit=limit,
        )

    async def find_high_risk(self, pagination: Pagination) -> PaginatedResponse[ProviderProfile]:
        return await self._page(
            {"risk_level": {"$in": [RiskLevel.HIGH.value, RiskLevel.CRITICAL.value]}},
            pagination,
            sort=[("risk_score", DESCENDING)],
        )

    async def find_overdue_assessments(self, now: datetime | None = None) -> list[ProviderProfile]:
        return await self.repo.find(
            {"next_assessment_date": {"$lt": now or utcnow()}},
            sort=[("next_assessment_date", 1)],
        )

    async def statistics(self) -> dict[str, Any]:
        return provider_statistics(await self.repo.find({}), utcnow())
