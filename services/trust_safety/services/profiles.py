"""
Profile Service
===============

Lifecycle of marketplace profiles: creation, owner and admin updates,
moderation, soft delete and restore. Completeness is recomputed on every
write and is never client-writable.

Version: 0.1.0
"""

from typing import Any

from services.trust_safety.models.base import utcnow
from services.trust_safety.models.profile import (
    CompletenessReport,
    ModerationStatus,
    Profile,
    ProfileCreate,
)
from services.trust_safety.services.permissions import (
    Entity,
    ensure_owner_or_admin,
    filter_update,
    is_admin,
)
from services.trust_safety.services.repository import Repository
from services.trust_safety.services.scoring import completeness, missing_profile_fields
from shared.auth.roles import ADMIN_ROLES, UserRole
from shared.database.mongodb import Collections
from shared.exceptions import AlreadyInStateError, NotFoundError, PermissionDeniedError
from shared.logging import get_logger
from shared.models import PaginatedResponse, Pagination
from shared.store import DESCENDING, DocumentStore


logger = get_logger(__name__)


def with_completeness(profile: Profile) -> Profile:
    return profile.model_copy(update={"completeness": completeness(profile)})


class ProfileService:
    """Profile lifecycle operations."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self.repo: Repository[Profile] = Repository(
            Collections.PROFILES, Profile, "Profile", store
        )

    async def create(
        self,
        user_id: str,
        data: ProfileCreate,
        actor_role: UserRole = UserRole.CUSTOMER,
    ) -> Profile:
        """
        Create the profile for a user.

        Raises:
            PermissionDeniedError: A non super admin asked for an admin role
            ConflictError: The user already has a profile
        """
        if data.role in ADMIN_ROLES and actor_role != UserRole.SUPER_ADMIN:
            raise PermissionDeniedError(
                "Only a super admin can create admin profiles",
                details={"requested_role": data.role.value},
            )

        profile = with_completeness(Profile(user_id=user_id, **data.model_dump(exclude_unset=True)))
        await self.repo.insert(profile)

        logger.info(
            "profile_created",
            profile_id=profile.id,
            user_id=user_id,
            role=profile.role.value,
            completeness=profile.completeness,
        )
        return profile

    async def get(self, profile_id: str) -> Profile:
        return await self.repo.get(profile_id)

    async def view(self, profile_id: str, actor_id: str, role: UserRole) -> Profile:
        """Full profile; identity and moderation fields are for the owner and admins."""
        profile = await self.repo.get(profile_id)
        ensure_owner_or_admin(profile.user_id, actor_id, role, "profile")
        return profile

    async def get_by_user(self, user_id: str) -> Profile:
        profile = await self.repo.find_one({"user_id": user_id})
        if profile is None:
            raise NotFoundError("Profile", user_id)
        return profile

    async def get_or_create(self, user_id: str) -> Profile:
        """Profile for a user, created with defaults on first access."""
        profile = await self.repo.find_one({"user_id": user_id}, include_deleted=True)
        if profile is not None:
            if profile.is_deleted:
                raise NotFoundError("Profile", user_id)
            return profile
        return await self.create(user_id, ProfileCreate())

    async def update(
        self,
        profile_id: str,
        changes: dict[str, Any],
        actor_id: str,
        role: UserRole,
    ) -> Profile:
        """Owner or admin update restricted by the field capability table."""
        allowed = filter_update(Entity.PROFILE, role, changes)

        def apply(profile: Profile) -> Profile:
            ensure_owner_or_admin(profile.user_id, actor_id, role, "profile")
            return with_completeness(profile.with_changes(allowed))

        profile = await self.repo.mutate(profile_id, apply)
        logger.info(
            "profile_updated",
            profile_id=profile_id,
            fields=sorted(allowed),
            completeness=profile.completeness,
        )
        return profile

    async def set_moderation(
        self,
        profile_id: str,
        status: ModerationStatus,
        actor_id: str,
        notes: str | None = None,
    ) -> Profile:
        def apply(profile: Profile) -> Profile:
            return profile.model_copy(
                update={
                    "moderation_status": status,
                    "moderated_by": actor_id,
                    "moderated_at": utcnow(),
                    "moderation_notes": notes,
                }
            )

        profile = await self.repo.mutate(profile_id, apply)
        logger.info("profile_moderated", profile_id=profile_id, status=status.value)
        return profile

    async def soft_delete(self, profile_id: str, actor_id: str, role: UserRole) -> Profile:
        def apply(profile: Profile) -> Profile:
            ensure_owner_or_admin(profile.user_id, actor_id, role, "profile")
            return profile.model_copy(
                update={
                    "is_deleted": True,
                    "deleted_at": utcnow(),
                    "deleted_by": actor_id,
                    "is_active_in_marketplace": False,
                }
            )

        profile = await self.repo.mutate(profile_id, apply)
        logger.info("profile_soft_deleted", profile_id=profile_id, deleted_by=actor_id)
        return profile

    async def restore(self, profile_id: str, actor_id: str) -> Profile:
        def apply(profile: Profile) -> Profile:
            if not profile.is_deleted:
                raise AlreadyInStateError(
                    "Profile is not deleted", details={"profile_id": profile_id}
                )
            return profile.model_copy(
                update={"is_deleted": False, "deleted_at": None, "deleted_by": None}
            )

        profile = await self.repo.mutate(profile_id, apply, include_deleted=True)
        logger.info("profile_restored", profile_id=profile_id, restored_by=actor_id)
        return profile

    async def missing_fields(
        self, profile_id: str, actor_id: str | None = None, role: UserRole | None = None
    ) -> CompletenessReport:
        """Completeness breakdown; with an actor, only the owner or an admin may ask."""
        profile = await self.repo.get(profile_id)
        if actor_id is not None and role is not None:
            ensure_owner_or_admin(profile.user_id, actor_id, role, "profile")
        return CompletenessReport(
            profile_id=profile.id,
            completeness=completeness(profile),
            missing_fields=missing_profile_fields(profile),
        )

    async def list_profiles(
        self,
        pagination: Pagination,
        role: UserRole | None = None,
        include_deleted: bool = False,
        actor_role: UserRole = UserRole.ADMIN,
    ) -> PaginatedResponse[Profile]:
        """Admin listing, newest first."""
        if include_deleted and not is_admin(actor_role):
            raise PermissionDeniedError("Only admins can list deleted profiles")

        filter: dict[str, Any] = {}
        if role is not None:
            filter["role"] = role.value

        total = await self.repo.count(filter, include_deleted=include_deleted)
        items = await self.repo.find(
            filter,
            sort=[("created_at", DESCENDING)],
            skip=pagination.offset,
            limit=pagination.limit,
            include_deleted=include_deleted,
        )
        return PaginatedResponse[Profile].build(items, total, pagination)
