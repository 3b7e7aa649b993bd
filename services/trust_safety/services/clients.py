"""
Client Service
==============

Lifecycle of client profiles. The risk level is a pure function of the
trust score and behaviour counters and is recomputed in the same write as
any change to one of its inputs.

Version: 0.1.0
"""

from datetime import timedelta
from typing import Any

from services.trust_safety.models.base import RiskLevel, parse_model, utcnow
from services.trust_safety.models.client import (
    BookingEvent,
    BookingOutcome,
    ClientProfile,
    ClientProfileCreate,
    ClientStats,
    LoyaltyTier,
    SuspensionRecord,
)
from services.trust_safety.models.profile import Profile
from services.trust_safety.models.review import check_rating
from services.trust_safety.services.permissions import (
    Entity,
    ensure_owner_or_admin,
    filter_update,
)
from services.trust_safety.services.repository import Repository
from services.trust_safety.services.reporting import client_statistics
from services.trust_safety.services.scoring import (
    add_rating,
    booking_rates,
    client_risk_level,
    completion_rate,
    reliability_score,
    verification_level,
)
from shared.auth.roles import UserRole
from shared.database.mongodb import Collections
from shared.exceptions import (
    AlreadyInStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from shared.logging import get_logger
from shared.models import PaginatedResponse, Pagination
from shared.store import DESCENDING, DocumentStore


logger = get_logger(__name__)

ACTIVE_WINDOW_DAYS = 30

# Fields feeding the client risk level
RISK_INPUTS = frozenset(
    {"risk_factors", "is_phone_verified", "is_email_verified", "is_address_verified"}
)


def with_risk(client: ClientProfile) -> ClientProfile:
    """Recompute the derived risk level from the current inputs."""
    cancel_rate, dispute_rate = booking_rates(
        client.total_bookings, client.cancelled_bookings, client.disputed_bookings
    )
    level = client_risk_level(
        client.trust_score,
        client.warnings_count,
        dispute_rate,
        cancel_rate,
        client.verified_count,
        len(client.risk_factors),
    )
    return client.model_copy(update={"risk_level": level})


def check_trust_score(score: float) -> float:
    if not 0 <= score <= 100:
        raise ValidationError(
            "Trust score must be between 0 and 100", details={"trust_score": score}
        )
    return score


def record_booking_event(client: ClientProfile, event: BookingEvent) -> ClientProfile:
    """Apply one booking outcome to the behaviour counters."""
    update: dict[str, Any] = {"last_active_date": utcnow()}

    if event.outcome == BookingOutcome.CREATED:
        update["total_bookings"] = client.total_bookings + 1
    elif event.outcome == BookingOutcome.COMPLETED:
        completed = client.completed_bookings + 1
        spent = client.total_spent + event.amount
        update.update(
            completed_bookings=completed,
            total_spent=round(spent, 2),
            average_booking_value=round(spent / completed, 2),
        )
    elif event.outcome == BookingOutcome.CANCELLED:
        update["cancelled_bookings"] = client.cancelled_bookings + 1
    elif event.outcome == BookingOutcome.DISPUTED:
        update["disputed_bookings"] = client.disputed_bookings + 1

    # Outcomes reported before their creation event still count as bookings
    closed = (
        update.get("completed_bookings", client.completed_bookings)
        + update.get("cancelled_bookings", client.cancelled_bookings)
        + update.get("disputed_bookings", client.disputed_bookings)
    )
    update["total_bookings"] = max(update.get("total_bookings", client.total_bookings), closed)
    return client.model_copy(update=update)


def build_client_stats(client: ClientProfile) -> ClientStats:
    cancel_rate, dispute_rate = booking_rates(
        client.total_bookings, client.cancelled_bookings, client.disputed_bookings
    )
    completion = completion_rate(client.total_bookings, client.completed_bookings)
    return ClientStats(
        client_id=client.id,
        trust_score=client.trust_score,
        risk_level=client.risk_level,
        verification_level=verification_level(client.verified_count),
        total_bookings=client.total_bookings,
        completion_rate=completion,
        cancellation_rate=cancel_rate,
        dispute_rate=dispute_rate,
        reliability_score=reliability_score(
            completion, client.verified_count, client.average_rating, cancel_rate, dispute_rate
        ),
        average_rating=client.average_rating,
        total_reviews=client.total_reviews,
        warnings_count=client.warnings_count,
        is_suspended=client.is_suspended,
        member_since=client.member_since,
    )


class ClientService:
    """Client lifecycle and trust operations."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self.repo: Repository[ClientProfile] = Repository(
            Collections.CLIENT_PROFILES, ClientProfile, "Client profile", store
        )
        self.profiles: Repository[Profile] = Repository(
            Collections.PROFILES, Profile, "Profile", store
        )

    async def owner_user_id(self, client: ClientProfile) -> str:
        """User id owning a client profile, for ownership checks and notifications."""
        profile = await self.profiles.get(client.profile_id, include_deleted=True)
        return profile.user_id

    async def _check_owner(self, client_id: str, actor_id: str, role: UserRole) -> ClientProfile:
        client = await self.repo.get(client_id)
        ensure_owner_or_admin(await self.owner_user_id(client), actor_id, role, "client profile")
        return client

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create(
        self,
        profile_id: str,
        data: ClientProfileCreate,
        actor_id: str,
        role: UserRole,
    ) -> ClientProfile:
        """
        Create the client profile for a customer-role profile.

        Raises:
            NotFoundError: Profile absent or soft-deleted
            ValidationError: Profile role is not customer
            ConflictError: Profile already has a client profile
        """
        profile = await self.profiles.get(profile_id)
        ensure_owner_or_admin(profile.user_id, actor_id, role, "profile")
        if profile.role != UserRole.CUSTOMER:
            raise ValidationError(
                "Client profiles require a customer-role profile",
                details={"profile_id": profile_id, "role": profile.role.value},
            )

        client = parse_model(
            ClientProfile,
            {
                "profile_id": profile_id,
                "warnings_count": profile.warnings_count,
                **data.model_dump(exclude_unset=True),
            },
        )
        client = with_risk(client)
        await self.repo.insert(client)

        logger.info(
            "client_profile_created",
            client_id=client.id,
            profile_id=profile_id,
            risk_level=client.risk_level.value,
        )
        return client

    async def get(self, client_id: str) -> ClientProfile:
        return await self.repo.get(client_id)

    async def get_by_profile(self, profile_id: str) -> ClientProfile:
        client = await self.repo.find_one({"profile_id": profile_id})
        if client is None:
            raise NotFoundError("Client profile", profile_id)
        return client

    async def view(self, client_id: str, actor_id: str, role: UserRole) -> ClientProfile:
        """Full client document; notes, flags and suspensions are for the owner and admins."""
        return await self._check_owner(client_id, actor_id, role)

    async def view_by_profile(self, profile_id: str, actor_id: str, role: UserRole) -> ClientProfile:
        client = await self.get_by_profile(profile_id)
        ensure_owner_or_admin(await self.owner_user_id(client), actor_id, role, "client profile")
        return client

    async def update(
        self,
        client_id: str,
        changes: dict[str, Any],
        actor_id: str,
        role: UserRole,
    ) -> ClientProfile:
        allowed = filter_update(Entity.CLIENT, role, changes)
        await self._check_owner(client_id, actor_id, role)
        client = await self.repo.mutate(client_id, lambda c: with_risk(c.with_changes(allowed)))
        logger.info(
            "client_profile_updated",
            client_id=client_id,
            fields=sorted(allowed),
            risk_recomputed=bool(RISK_INPUTS & allowed.keys()),
        )
        return client

    async def soft_delete(self, client_id: str, actor_id: str, role: UserRole) -> ClientProfile:
        await self._check_owner(client_id, actor_id, role)
        client = await self.repo.mutate(
            client_id,
            lambda c: c.model_copy(
                update={"is_deleted": True, "deleted_at": utcnow(), "deleted_by": actor_id}
            ),
        )
        logger.info("client_profile_soft_deleted", client_id=client_id, deleted_by=actor_id)
        return client

    # =========================================================================
    # Trust lifecycle
    # =========================================================================

    async def update_trust_score(
        self,
        client_id: str,
        trust_score: float,
        actor_id: str,
        reason: str | None = None,
    ) -> ClientProfile:
        """
        Set the trust score and recompute risk in the same write.

        Raises:
            ValidationError: Score outside [0, 100]
        """
        check_trust_score(trust_score)
        client = await self.repo.mutate(
            client_id, lambda c: with_risk(c.model_copy(update={"trust_score": trust_score}))
        )
        logger.info(
            "trust_score_updated",
            client_id=client_id,
            trust_score=trust_score,
            risk_level=client.risk_level.value,
            updated_by=actor_id,
            reason=reason,
        )
        return client

    async def add_suspension(
        self,
        client_id: str,
        reason: str,
        duration: int,
        actor_id: str,
    ) -> ClientProfile:
        def apply(client: ClientProfile) -> ClientProfile:
            if client.is_suspended:
                raise AlreadyInStateError(
                    "Client is already suspended", details={"client_id": client_id}
                )
            record = SuspensionRecord(reason=reason, duration=duration, suspended_by=actor_id)
            return client.model_copy(
                update={
                    "suspension_history": [*client.suspension_history, record],
                    "flags": [*client.flags, f"Suspended: {reason}"],
                }
            )

        client = await self.repo.mutate(client_id, apply)
        logger.info(
            "client_suspended",
            client_id=client_id,
            duration_days=duration,
            suspended_by=actor_id,
        )
        return client

    async def resolve_suspension(self, client_id: str, actor_id: str) -> ClientProfile:
        def apply(client: ClientProfile) -> ClientProfile:
            if not client.is_suspended:
                raise InvalidTransitionError(
                    "Client has no open suspension", details={"client_id": client_id}
                )
            now = utcnow()
            history = [
                r.model_copy(update={"resolved_at": now}) if r.resolved_at is None else r
                for r in client.suspension_history
            ]
            return client.model_copy(update={"suspension_history": history})

        client = await self.repo.mutate(client_id, apply)
        logger.info("client_suspension_resolved", client_id=client_id, resolved_by=actor_id)
        return client

    async def record_booking(self, client_id: str, event: BookingEvent) -> ClientProfile:
        client = await self.repo.mutate(
            client_id, lambda c: with_risk(record_booking_event(c, event))
        )
        logger.info(
            "client_booking_recorded",
            client_id=client_id,
            outcome=event.outcome.value,
            total_bookings=client.total_bookings,
            risk_level=client.risk_level.value,
        )
        return client

    async def apply_warnings_count(self, profile_id: str, warnings_count: int) -> ClientProfile | None:
        """Set the cached warning count for a profile's client, if it has one."""
        client = await self.repo.find_one({"profile_id": profile_id})
        if client is None:
            return None
        if client.warnings_count == warnings_count:
            return client
        return await self.repo.mutate(
            client.id,
            lambda c: with_risk(c.model_copy(update={"warnings_count": warnings_count})),
        )

    async def refresh_warnings_count(self, client_id: str) -> ClientProfile:
        """Recount active warnings from the warnings collection."""
        client = await self.repo.get(client_id)
        count = await self.repo.store.count(
            Collections.WARNINGS, {"profile_id": client.profile_id, "is_active": True}
        )
        refreshed = await self.apply_warnings_count(client.profile_id, count)
        return refreshed or client

    # =========================================================================
    # Reviews and complaints
    # =========================================================================

    async def _check_not_owner(self, client_id: str, actor_id: str, action: str) -> None:
        client = await self.repo.get(client_id)
        if await self.owner_user_id(client) == actor_id:
            raise ValidationError(
                f"Clients cannot {action} themselves", details={"client_id": client_id}
            )

    async def record_review(self, client_id: str, rating: int, reviewer_id: str) -> ClientProfile:
        """Fold a provider's rating of this client into the running average."""
        check_rating(rating)
        await self._check_not_owner(client_id, reviewer_id, "review")

        def apply(client: ClientProfile) -> ClientProfile:
            average, count = add_rating(client.average_rating, client.total_reviews, rating)
            return with_risk(
                client.model_copy(update={"average_rating": average, "total_reviews": count})
            )

        client = await self.repo.mutate(client_id, apply)
        logger.info(
            "client_review_recorded",
            client_id=client_id,
            rating=rating,
            average_rating=client.average_rating,
            reviewer_id=reviewer_id,
        )
        return client

    async def record_complaint(self, client_id: str, reporter_id: str, reason: str) -> ClientProfile:
        """Add a complaint as a risk factor and recompute the risk level."""
        await self._check_not_owner(client_id, reporter_id, "report")
        client = await self.repo.mutate(
            client_id,
            lambda c: with_risk(
                c.model_copy(update={"risk_factors": [*c.risk_factors, f"Complaint: {reason}"]})
            ),
        )
        logger.info(
            "client_complaint_recorded",
            client_id=client_id,
            risk_factors=len(client.risk_factors),
            risk_level=client.risk_level.value,
            reporter_id=reporter_id,
        )
        return client

    # =========================================================================
    # Preferences
    # =========================================================================

    async def _edit_list(
        self,
        client_id: str,
        field: str,
        value: str,
        add: bool,
        actor_id: str,
        role: UserRole,
    ) -> ClientProfile:
        await self._check_owner(client_id, actor_id, role)

        def apply(client: ClientProfile) -> ClientProfile:
            current: list[str] = getattr(client, field)
            if add:
                if value in current:
                    raise AlreadyInStateError(f"{value} already in {field}")
                return client.model_copy(update={field: [*current, value]})
            if value not in current:
                raise NotFoundError(field, value)
            return client.model_copy(update={field: [v for v in current if v != value]})

        return await self.repo.mutate(client_id, apply)

    async def add_preferred_service(
        self, client_id: str, service_id: str, actor_id: str, role: UserRole
    ) -> ClientProfile:
        return await self._edit_list(client_id, "preferred_services", service_id, True, actor_id, role)

    async def remove_preferred_service(
        self, client_id: str, service_id: str, actor_id: str, role: UserRole
    ) -> ClientProfile:
        return await self._edit_list(client_id, "preferred_services", service_id, False, actor_id, role)

    async def add_preferred_provider(
        self, client_id: str, provider_id: str, actor_id: str, role: UserRole
    ) -> ClientProfile:
        return await self._edit_list(client_id, "preferred_providers", provider_id, True, actor_id, role)

    async def remove_preferred_provider(
        self, client_id: str, provider_id: str, actor_id: str, role: UserRole
    ) -> ClientProfile:
        return await self._edit_list(client_id, "preferred_providers", provider_id, False, actor_id, role)

    # =========================================================================
    # Finders and stats
    # =========================================================================

    async def _page(
        self,
        filter: dict[str, Any],
        pagination: Pagination,
        sort: list[tuple[str, int]] | None = None,
    ) -> PaginatedResponse[ClientProfile]:
        total = await self.repo.count(filter)
        items = await self.repo.find(
            filter,
            sort=sort or [("created_at", DESCENDING)],
            skip=pagination.offset,
            limit=pagination.limit,
        )
        return PaginatedResponse[ClientProfile].build(items, total, pagination)

    async def find_high_risk(self, pagination: Pagination) -> PaginatedResponse[ClientProfile]:
        return await self._page(
            {"risk_level": {"$in": [RiskLevel.HIGH.value, RiskLevel.CRITICAL.value]}},
            pagination,
            sort=[("trust_score", 1)],
        )

    async def find_by_loyalty_tier(
        self, tier: LoyaltyTier, pagination: Pagination
    ) -> PaginatedResponse[ClientProfile]:
        return await self._page({"loyalty_tier": tier.value}, pagination)

    async def find_by_trust_range(
        self, min_score: float, max_score: float, pagination: Pagination
    ) -> PaginatedResponse[ClientProfile]:
        check_trust_score(min_score)
        check_trust_score(max_score)
        if min_score > max_score:
            raise ValidationError(
                "min_score must not exceed max_score",
                details={"min_score": min_score, "max_score": max_score},
            )
        return await self._page(
            {"trust_score": {"$gte": min_score, "$lte": max_score}},
            pagination,
            sort=[("trust_score", DESCENDING)],
        )

    async def find_active(
        self, pagination: Pagination, days: int = ACTIVE_WINDOW_DAYS
    ) -> PaginatedResponse[ClientProfile]:
        cutoff = utcnow() - timedelta(days=days)
        return await self._page(
            {"last_active_date": {"$gte": cutoff}},
            pagination,
            sort=[("last_active_date", DESCENDING)],
        )

    async def client_stats(self, client_id: str) -> ClientStats:
        """Reliability metrics for one client."""
        return build_client_stats(await self.repo.get(client_id))

    async def view_stats(self, client_id: str, actor_id: str, role: UserRole) -> ClientStats:
        """Reliability metrics for providers vetting a booking, the owner and admins."""
        client = await self.repo.get(client_id)
        if role != UserRole.PROVIDER:
            ensure_owner_or_admin(await self.owner_user_id(client), actor_id, role, "client profile")
        return build_client_stats(client)

    async def statistics(self) -> dict[str, Any]:
        return client_statistics(await self.repo.find({}))
