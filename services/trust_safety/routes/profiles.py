"""
Profiles Routes
===============

API endpoints for marketplace profiles.

Version: 0.1.0
"""

from fastapi import APIRouter, Depends, Query, status

from services.trust_safety.dependencies import get_pagination, get_profile_service
from services.trust_safety.models.profile import (
    CompletenessReport,
    ModerationUpdate,
    Profile,
    ProfileCreate,
    ProfileUpdate,
)
from services.trust_safety.services import ProfileService
from shared.auth import User, UserRole, get_current_active_user, require_admin
from shared.logging import get_logger
from shared.models import BaseResponse, PaginatedResponse, Pagination


logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=BaseResponse[Profile], status_code=status.HTTP_201_CREATED)
async def create_profile(
    data: ProfileCreate,
    user: User = Depends(get_current_active_user),
    service: ProfileService = Depends(get_profile_service),
) -> BaseResponse[Profile]:
    """Create the caller's profile."""
    profile = await service.create(user.id, data, actor_role=user.role)
    return BaseResponse(data=profile, message="Profile created successfully")


@router.get("/me", response_model=BaseResponse[Profile])
async def get_my_profile(
    user: User = Depends(get_current_active_user),
    service: ProfileService = Depends(get_profile_service),
) -> BaseResponse[Profile]:
    """Get the caller's profile, creating it on first access."""
    profile = await service.get_or_create(user.id)
    return BaseResponse(data=profile)


@router.get("", response_model=PaginatedResponse[Profile])
async def list_profiles(
    role: UserRole | None = Query(default=None, description="Filter by role"),
    include_deleted: bool = Query(default=False),
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> PaginatedResponse[Profile]:
    """List profiles (admin)."""
    return await service.list_profiles(
        pagination, role=role, include_deleted=include_deleted, actor_role=admin.role
    )


@router.get("/{profile_id}", response_model=BaseResponse[Profile])
async def get_profile(
    profile_id: str,
    user: User = Depends(get_current_active_user),
    service: ProfileService = Depends(get_profile_service),
) -> BaseResponse[Profile]:
    """Get a profile (owner or admin)."""
    profile = await service.view(profile_id, user.id, user.role)
    return BaseResponse(data=profile)


@router.patch("/{profile_id}", response_model=BaseResponse[Profile])
async def update_profile(
    profile_id: str,
    data: ProfileUpdate,
    user: User = Depends(get_current_active_user),
    service: ProfileService = Depends(get_profile_service),
) -> BaseResponse[Profile]:
    """
    Update a profile.

    Owners may edit their own content fields; admins may also set
    verification and marketplace visibility.
    """
    profile = await service.update(
        profile_id, data.model_dump(exclude_unset=True), user.id, user.role
    )
    return BaseResponse(data=profile, message="Profile updated successfully")


@router.get("/{profile_id}/completeness", response_model=BaseResponse[CompletenessReport])
async def get_completeness(
    profile_id: str,
    user: User = Depends(get_current_active_user),
    service: ProfileService = Depends(get_profile_service),
) -> BaseResponse[CompletenessReport]:
    report = await service.missing_fields(profile_id, user.id, user.role)
    return BaseResponse(data=report)


@router.patch("/{profile_id}/moderation", response_model=BaseResponse[Profile])
async def moderate_profile(
    profile_id: str,
    data: ModerationUpdate,
    admin: User = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> BaseResponse[Profile]:
    profile = await service.set_moderation(profile_id, data.status, admin.id, data.notes)
    return BaseResponse(data=profile, message="Moderation status updated")


@router.delete("/{profile_id}", response_model=BaseResponse[Profile])
async def delete_profile(
    profile_id: str,
    user: User = Depends(get_current_active_user),
    service: ProfileService = Depends(get_profile_service),
) -> BaseResponse[Profile]:
    """Soft delete a profile."""
    profile = await service.soft_delete(profile_id, user.id, user.role)
    return BaseResponse(data=profile, message="Profile deleted successfully")


@router.post("/{profile_id}/restore", response_model=BaseResponse[Profile])
async def restore_profile(
    profile_id: str,
    admin: User = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service),
) -> BaseResponse[Profile]:
    profile = await service.restore(profile_id, admin.id)
    return BaseResponse(data=profile, message="Profile restored successfully")
