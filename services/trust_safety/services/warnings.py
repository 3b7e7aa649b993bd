"""
Warning Service
===============

Issue, edit and move warnings through their lifecycle, plus the batch
sweeps that keep expiry and cached counts in line.

The warnings collection is the single source of truth for warning counts.
After any change to a warning's active flag the owning profile's cached
``warnings_count`` (and its client profile's, with the client risk level)
is recounted from the collection and set, never incremented.

Version: 0.1.0
"""

from datetime import datetime, timedelta
from typing import Any

from services.trust_safety.models.base import (
    BulkItemResult,
    BulkOperationResult,
    parse_model,
    utcnow,
)
from services.trust_safety.models.profile import Profile
from services.trust_safety.models.warning import (
    SeverityLevel,
    WarningCategory,
    WarningCreate,
    WarningFilters,
    WarningRecord,
    WarningStatus,
)
from services.trust_safety.services.clients import ClientService
from services.trust_safety.services.permissions import (
    Entity,
    ensure_owner_or_admin,
    filter_update,
    is_admin,
)
from services.trust_safety.services.reporting import (
    user_warning_summary,
    warning_analytics,
    warning_summary,
)
from services.trust_safety.services.repository import Repository
from services.trust_safety.services.transitions import (
    WarningAction,
    WarningWorkflow,
    acknowledge_warning,
)
from shared.auth.roles import UserRole
from shared.database.mongodb import Collections
from shared.exceptions import PermissionDeniedError, TrustSafetyError, ValidationError
from shared.logging import get_logger
from shared.models import PaginatedResponse, Pagination
from shared.store import DESCENDING, DocumentStore


logger = get_logger(__name__)

DEFAULT_RETENTION_DAYS = 365

NEWEST_FIRST = [("issued_at", DESCENDING)]

_ACTION_EVENTS = {
    WarningAction.RESOLVE: "warning_resolved",
    WarningAction.ACTIVATE: "warning_activated",
    WarningAction.DEACTIVATE: "warning_deactivated",
}


def build_filter(filters: WarningFilters | None) -> dict[str, Any]:
    """Translate listing filters into a store filter."""
    if filters is None:
        return {}
    query: dict[str, Any] = {}
    if filters.status is not None:
        query["status"] = filters.status.value
    if filters.severity is not None:
        query["severity"] = filters.severity.value
    if filters.category is not None:
        query["category"] = filters.category.value
    if filters.is_active is not None:
        query["is_active"] = filters.is_active
    if filters.acknowledged is not None:
        query["acknowledged_at"] = {"$ne": None} if filters.acknowledged else None
    return query


class WarningService:
    """Warning lifecycle operations."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self.repo: Repository[WarningRecord] = Repository(
            Collections.WARNINGS, WarningRecord, "Warning", store
        )
        self.profiles: Repository[Profile] = Repository(
            Collections.PROFILES, Profile, "Profile", store
        )
        self.clients = ClientService(store)
        self.workflow = WarningWorkflow()

    # =========================================================================
    # Counts
    # =========================================================================

    async def count_active(self, profile_id: str) -> int:
        return await self.repo.count({"profile_id": profile_id, "is_active": True})

    async def refresh_profile_warning_count(self, profile_id: str) -> int:
        """Recount active warnings for a profile and set the cached counts."""
        count = await self.count_active(profile_id)
        await self.profiles.update_many(
            {"_id": profile_id, "warnings_count": {"$ne": count}},
            {"$set": {"warnings_count": count, "updated_at": utcnow()}, "$inc": {"version": 1}},
        )
        await self.clients.apply_warnings_count(profile_id, count)
        return count

    async def sync_profile_warning_counts(self) -> dict[str, int]:
        """Reconcile every profile's cached count with the warnings collection."""
        profiles = await self.profiles.find({}, include_deleted=True)
        updated = 0
        for profile in profiles:
            count = await self.count_active(profile.id)
            if count != profile.warnings_count:
                await self.refresh_profile_warning_count(profile.id)
                updated += 1
            else:
                await self.clients.apply_warnings_count(profile.id, count)

        logger.info("warning_counts_synced", total_profiles=len(profiles), updated_profiles=updated)
        return {"total_profiles": len(profiles), "updated_profiles": updated}

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create(self, data: WarningCreate, issued_by: str) -> WarningRecord:
        """
        Issue a warning against a user's profile.

        Raises:
            NotFoundError: Profile absent or soft-deleted
            ValidationError: Profile belongs to a different user
        """
        profile = await self.profiles.get(data.profile_id)
        if profile.user_id != data.user_id:
            raise ValidationError(
                "Profile does not belong to the warned user",
                details={"profile_id": data.profile_id, "user_id": data.user_id},
            )

        warning = parse_model(
            WarningRecord,
            {**data.model_dump(exclude_unset=True), "issued_by": issued_by, "issued_at": utcnow()},
        )
        await self.repo.insert(warning)
        await self.refresh_profile_warning_count(warning.profile_id)

        logger.info(
            "warning_issued",
            warning_id=warning.id,
            user_id=warning.user_id,
            category=warning.category.value,
            severity=warning.severity.value,
            expires_at=warning.expires_at,
            issued_by=issued_by,
        )
        return warning

    async def get(self, warning_id: str, actor_id: str, role: UserRole) -> WarningRecord:
        warning = await self.repo.get(warning_id)
        ensure_owner_or_admin(warning.user_id, actor_id, role, "warning")
        return warning

    async def update(
        self,
        warning_id: str,
        changes: dict[str, Any],
        actor_id: str,
        role: UserRole,
    ) -> WarningRecord:
        """Edit content of an active warning."""
        allowed = filter_update(Entity.WARNING, role, changes)

        def apply(warning: WarningRecord) -> WarningRecord:
            self.workflow.check(warning, WarningAction.UPDATE, utcnow())
            return warning.with_changes(allowed)

        warning = await self.repo.mutate(warning_id, apply)
        logger.info(
            "warning_updated", warning_id=warning_id, fields=sorted(allowed), updated_by=actor_id
        )
        return warning

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def acknowledge(self, warning_id: str, actor_id: str, role: UserRole) -> WarningRecord:
        """Acknowledge once; only the warned user or an admin may acknowledge."""

        def apply(warning: WarningRecord) -> WarningRecord:
            ensure_owner_or_admin(warning.user_id, actor_id, role, "warning")
            return acknowledge_warning(warning, actor_id, utcnow())

        warning = await self.repo.mutate(warning_id, apply)
        logger.info("warning_acknowledged", warning_id=warning_id, acknowledged_by=actor_id)
        return warning

    async def _transition(
        self,
        warning_id: str,
        action: WarningAction,
        actor_id: str,
        notes: str | None = None,
    ) -> WarningRecord:
        warning = await self.repo.mutate(
            warning_id,
            lambda w: self.workflow.apply(w, action, actor_id, utcnow(), notes),
        )
        await self.refresh_profile_warning_count(warning.profile_id)
        logger.info(
            _ACTION_EVENTS[action],
            warning_id=warning_id,
            status=warning.status.value,
            is_active=warning.is_active,
            actor_id=actor_id,
        )
        return warning

    async def resolve(self, warning_id: str, actor_id: str, notes: str | None = None) -> WarningRecord:
        return await self._transition(warning_id, WarningAction.RESOLVE, actor_id, notes)

    async def activate(self, warning_id: str, actor_id: str) -> WarningRecord:
        return await self._transition(warning_id, WarningAction.ACTIVATE, actor_id)

    async def deactivate(self, warning_id: str, actor_id: str) -> WarningRecord:
        return await self._transition(warning_id, WarningAction.DEACTIVATE, actor_id)

    async def bulk_acknowledge(
        self, warning_ids: list[str], actor_id: str, role: UserRole
    ) -> BulkOperationResult:
        results: list[BulkItemResult] = []
        for warning_id in warning_ids:
            try:
                await self.acknowledge(warning_id, actor_id, role)
                results.append(BulkItemResult(id=warning_id, success=True))
            except TrustSafetyError as e:
                results.append(BulkItemResult(id=warning_id, success=False, reason=e.message))
        outcome = BulkOperationResult.from_results(results)
        logger.info(
            "bulk_acknowledge_completed", successful=outcome.successful, failed=outcome.failed
        )
        return outcome

    async def bulk_resolve(
        self, warning_ids: list[str], actor_id: str, notes: str | None = None
    ) -> BulkOperationResult:
        results: list[BulkItemResult] = []
        for warning_id in warning_ids:
            try:
                await self.resolve(warning_id, actor_id, notes)
                results.append(BulkItemResult(id=warning_id, success=True))
            except TrustSafetyError as e:
                results.append(BulkItemResult(id=warning_id, success=False, reason=e.message))
        outcome = BulkOperationResult.from_results(results)
        logger.info("bulk_resolve_completed", successful=outcome.successful, failed=outcome.failed)
        return outcome

    # =========================================================================
    # Sweeps
    # =========================================================================

    async def expire_old_warnings(self, now: datetime | None = None) -> int:
        """
        Expire every active warning past its expiry date.

        Only documents matching the stable predicate are touched, so a
        second run affects nothing and overlapping runs do not conflict.
        """
        now = now or utcnow()
        predicate = {"status": WarningStatus.ACTIVE.value, "expires_at": {"$lt": now}}
        affected = {w.profile_id for w in await self.repo.find(predicate)}

        expired = await self.repo.update_many(
            predicate,
            {
                "$set": {"status": WarningStatus.EXPIRED.value, "is_active": False, "updated_at": now},
                "$inc": {"version": 1},
            },
        )
        for profile_id in affected:
            await self.refresh_profile_warning_count(profile_id)

        logger.info("warnings_expired", expired=expired, profiles=len(affected))
        return expired

    async def cleanup_expired_warnings(
        self,
        days_old: int = DEFAULT_RETENTION_DAYS,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Hard-delete expired warnings whose expiry is older than the retention cutoff."""
        if days_old < 1:
            raise ValidationError("days_old must be at least 1", details={"days_old": days_old})

        cutoff = (now or utcnow()) - timedelta(days=days_old)
        deleted = await self.repo.delete_many(
            {"status": WarningStatus.EXPIRED.value, "expires_at": {"$lte": cutoff}}
        )
        logger.info("expired_warnings_cleaned", deleted=deleted, cutoff=cutoff.isoformat())
        return {"deleted": deleted, "cutoff_date": cutoff}

    # =========================================================================
    # Queries
    # =========================================================================

    async def _page(
        self,
        filter: dict[str, Any],
        pagination: Pagination,
        include_summary: bool = False,
    ) -> PaginatedResponse[WarningRecord]:
        total = await self.repo.count(filter)
        items = await self.repo.find(
            filter, sort=NEWEST_FIRST, skip=pagination.offset, limit=pagination.limit
        )
        summary = warning_summary(await self.repo.find(filter)) if include_summary else None
        return PaginatedResponse[WarningRecord].build(items, total, pagination, summary)

    async def list_by_user(
        self,
        user_id: str,
        pagination: Pagination,
        actor_id: str,
        role: UserRole,
        filters: WarningFilters | None = None,
        include_summary: bool = False,
    ) -> PaginatedResponse[WarningRecord]:
        ensure_owner_or_admin(user_id, actor_id, role, "warning")
        return await self._page(
            {**build_filter(filters), "user_id": user_id}, pagination, include_summary
        )

    async def list_by_profile(
        self,
        profile_id: str,
        pagination: Pagination,
        actor_id: str,
        role: UserRole,
        filters: WarningFilters | None = None,
        include_summary: bool = False,
    ) -> PaginatedResponse[WarningRecord]:
        if not is_admin(role):
            profile = await self.profiles.get(profile_id)
            if profile.user_id != actor_id:
                raise PermissionDeniedError("Not allowed to view warnings for this profile")
        return await self._page(
            {**build_filter(filters), "profile_id": profile_id}, pagination, include_summary
        )

    async def list_all(
        self,
        pagination: Pagination,
        filters: WarningFilters | None = None,
        include_summary: bool = False,
    ) -> PaginatedResponse[WarningRecord]:
        return await self._page(build_filter(filters), pagination, include_summary)

    async def list_by_category(
        self, category: WarningCategory, pagination: Pagination
    ) -> PaginatedResponse[WarningRecord]:
        return await self._page(
            {"category": category.value, "status": WarningStatus.ACTIVE.value, "is_active": True},
            pagination,
        )

    async def list_by_severity(
        self, severity: SeverityLevel, pagination: Pagination
    ) -> PaginatedResponse[WarningRecord]:
        return await self._page(
            {"severity": severity.value, "status": WarningStatus.ACTIVE.value, "is_active": True},
            pagination,
        )

    async def list_pending_acknowledgments(
        self, pagination: Pagination
    ) -> PaginatedResponse[WarningRecord]:
        return await self._page(
            {"acknowledged_at": None, "status": WarningStatus.ACTIVE.value, "is_active": True},
            pagination,
        )

    async def list_expired(self, pagination: Pagination) -> PaginatedResponse[WarningRecord]:
        return await self._page({"status": WarningStatus.EXPIRED.value}, pagination)

    async def analytics(self) -> dict[str, Any]:
        return warning_analytics(await self.repo.find({}), utcnow())

    async def user_summary(self, user_id: str, actor_id: str, role: UserRole) -> dict[str, Any]:
        ensure_owner_or_admin(user_id, actor_id, role, "warning")
        warnings = await self.repo.find({"user_id": user_id})
        profile = await self.profiles.find_one({"user_id": user_id})
        return user_warning_summary(
            user_id, warnings, utcnow(), profile.warnings_count if profile else 0
        )
