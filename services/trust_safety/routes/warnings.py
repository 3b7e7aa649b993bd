"""
Warnings Routes
===============

API endpoints for issuing, acknowledging and resolving warnings, plus
analytics and maintenance sweeps.

Version: 0.1.0
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from services.trust_safety.dependencies import (
    get_pagination,
    get_warning_filters,
    get_warning_service,
)
from services.trust_safety.models.base import BulkOperationResult
from services.trust_safety.models.warning import (
    BulkWarningRequest,
    ResolveRequest,
    SeverityLevel,
    WarningCategory,
    WarningCreate,
    WarningFilters,
    WarningRecord,
    WarningStatus,
    WarningUpdate,
)
from services.trust_safety.services import WarningService
from services.trust_safety.services.notifications import (
    dispatch_notification,
    warning_issued,
    warning_resolved,
)
from services.trust_safety.services.warnings import DEFAULT_RETENTION_DAYS
from shared.auth import (
    User,
    get_current_active_user,
    require_admin,
    require_super_admin,
)
from shared.logging import get_logger
from shared.models import BaseResponse, PaginatedResponse, Pagination


logger = get_logger(__name__)

router = APIRouter()


# ============================================================================
# Reference data
# ============================================================================


@router.get("/categories", response_model=BaseResponse[list[str]])
async def list_categories(user: User = Depends(get_current_active_user)) -> BaseResponse[list[str]]:
    return BaseResponse(data=[c.value for c in WarningCategory])


@router.get("/severity-levels", response_model=BaseResponse[list[str]])
async def list_severity_levels(
    user: User = Depends(get_current_active_user),
) -> BaseResponse[list[str]]:
    return BaseResponse(data=[s.value for s in SeverityLevel])


@router.get("/statuses", response_model=BaseResponse[list[str]])
async def list_statuses(user: User = Depends(get_current_active_user)) -> BaseResponse[list[str]]:
    return BaseResponse(data=[s.value for s in WarningStatus])


# ============================================================================
# Issue and list
# ============================================================================


@router.post("", response_model=BaseResponse[WarningRecord], status_code=status.HTTP_201_CREATED)
async def create_warning(
    data: WarningCreate,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[WarningRecord]:
    """
    Issue a warning against a user's profile.

    Expiry defaults by severity: 90 days minor, 180 major, 365 severe.
    """
    warning = await service.create(data, issued_by=admin.id)
    dispatch_notification(background_tasks, warning_issued(warning))
    return BaseResponse(data=warning, message="Warning issued successfully")


@router.get("", response_model=PaginatedResponse[WarningRecord])
async def list_warnings(
    include_summary: bool = Query(default=False),
    filters: WarningFilters = Depends(get_warning_filters),
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> PaginatedResponse[WarningRecord]:
    return await service.list_all(pagination, filters, include_summary)


@router.get("/analytics", response_model=BaseResponse[dict[str, Any]])
async def get_warning_analytics(
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[dict[str, Any]]:
    return BaseResponse(data=await service.analytics())


@router.get("/pending-acknowledgments", response_model=PaginatedResponse[WarningRecord])
async def list_pending_acknowledgments(
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> PaginatedResponse[WarningRecord]:
    return await service.list_pending_acknowledgments(pagination)


@router.get("/expired", response_model=PaginatedResponse[WarningRecord])
async def list_expired_warnings(
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> PaginatedResponse[WarningRecord]:
    return await service.list_expired(pagination)


@router.get("/by-category/{category}", response_model=PaginatedResponse[WarningRecord])
async def list_warnings_by_category(
    category: WarningCategory,
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> PaginatedResponse[WarningRecord]:
    return await service.list_by_category(category, pagination)


@router.get("/by-severity/{severity}", response_model=PaginatedResponse[WarningRecord])
async def list_warnings_by_severity(
    severity: SeverityLevel,
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> PaginatedResponse[WarningRecord]:
    return await service.list_by_severity(severity, pagination)


@router.get("/user/{user_id}", response_model=PaginatedResponse[WarningRecord])
async def list_user_warnings(
    user_id: str,
    include_summary: bool = Query(default=False),
    filters: WarningFilters = Depends(get_warning_filters),
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_active_user),
    service: WarningService = Depends(get_warning_service),
) -> PaginatedResponse[WarningRecord]:
    """Warnings issued to a user. Users may only list their own."""
    return await service.list_by_user(
        user_id, pagination, user.id, user.role, filters, include_summary
    )


@router.get("/user/{user_id}/summary", response_model=BaseResponse[dict[str, Any]])
async def get_user_warning_summary(
    user_id: str,
    user: User = Depends(get_current_active_user),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[dict[str, Any]]:
    return BaseResponse(data=await service.user_summary(user_id, user.id, user.role))


@router.get("/profile/{profile_id}", response_model=PaginatedResponse[WarningRecord])
async def list_profile_warnings(
    profile_id: str,
    include_summary: bool = Query(default=False),
    filters: WarningFilters = Depends(get_warning_filters),
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(get_current_active_user),
    service: WarningService = Depends(get_warning_service),
) -> PaginatedResponse[WarningRecord]:
    return await service.list_by_profile(
        profile_id, pagination, user.id, user.role, filters, include_summary
    )


# ============================================================================
# Bulk
# ============================================================================


@router.post("/bulk/acknowledge", response_model=BaseResponse[BulkOperationResult])
async def bulk_acknowledge_warnings(
    data: BulkWarningRequest,
    user: User = Depends(get_current_active_user),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[BulkOperationResult]:
    result = await service.bulk_acknowledge(data.warning_ids, user.id, user.role)
    return BaseResponse(
        data=result,
        message=f"{result.successful} of {result.total_processed} warnings acknowledged",
    )


@router.post("/bulk/resolve", response_model=BaseResponse[BulkOperationResult])
async def bulk_resolve_warnings(
    data: BulkWarningRequest,
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[BulkOperationResult]:
    result = await service.bulk_resolve(data.warning_ids, admin.id, data.notes)
    return BaseResponse(
        data=result,
        message=f"{result.successful} of {result.total_processed} warnings resolved",
    )


# ============================================================================
# Maintenance
# ============================================================================


@router.post("/maintenance/expire", response_model=BaseResponse[dict[str, int]])
async def expire_warnings(
    admin: User = Depends(require_super_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[dict[str, int]]:
    expired = await service.expire_old_warnings()
    return BaseResponse(data={"expired": expired}, message=f"{expired} warnings expired")


@router.delete("/maintenance/cleanup", response_model=BaseResponse[dict[str, Any]])
async def cleanup_expired_warnings(
    days_old: int = Query(default=DEFAULT_RETENTION_DAYS, ge=1),
    admin: User = Depends(require_super_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[dict[str, Any]]:
    result = await service.cleanup_expired_warnings(days_old)
    return BaseResponse(
        data=result, message=f"Cleanup completed. {result['deleted']} expired warnings removed"
    )


@router.post("/maintenance/sync-counts", response_model=BaseResponse[dict[str, int]])
async def sync_warning_counts(
    admin: User = Depends(require_super_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[dict[str, int]]:
    return BaseResponse(data=await service.sync_profile_warning_counts())


# ============================================================================
# Single warning
# ============================================================================


@router.get("/{warning_id}", response_model=BaseResponse[WarningRecord])
async def get_warning(
    warning_id: str,
    user: User = Depends(get_current_active_user),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[WarningRecord]:
    return BaseResponse(data=await service.get(warning_id, user.id, user.role))


@router.patch("/{warning_id}", response_model=BaseResponse[WarningRecord])
async def update_warning(
    warning_id: str,
    data: WarningUpdate,
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[WarningRecord]:
    warning = await service.update(
        warning_id, data.model_dump(exclude_unset=True), admin.id, admin.role
    )
    return BaseResponse(data=warning, message="Warning updated successfully")


@router.post("/{warning_id}/acknowledge", response_model=BaseResponse[WarningRecord])
async def acknowledge_warning(
    warning_id: str,
    user: User = Depends(get_current_active_user),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[WarningRecord]:
    warning = await service.acknowledge(warning_id, user.id, user.role)
    return BaseResponse(data=warning, message="Warning acknowledged")


@router.post("/{warning_id}/resolve", response_model=BaseResponse[WarningRecord])
async def resolve_warning(
    warning_id: str,
    background_tasks: BackgroundTasks,
    data: ResolveRequest | None = None,
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[WarningRecord]:
    warning = await service.resolve(warning_id, admin.id, data.notes if data else None)
    dispatch_notification(background_tasks, warning_resolved(warning))
    return BaseResponse(data=warning, message="Warning resolved")


@router.post("/{warning_id}/activate", response_model=BaseResponse[WarningRecord])
async def activate_warning(
    warning_id: str,
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[WarningRecord]:
    warning = await service.activate(warning_id, admin.id)
    return BaseResponse(data=warning, message="Warning activated")


@router.post("/{warning_id}/deactivate", response_model=BaseResponse[WarningRecord])
async def deactivate_warning(
    warning_id: str,
    admin: User = Depends(require_admin),
    service: WarningService = Depends(get_warning_service),
) -> BaseResponse[WarningRecord]:
    warning = await service.deactivate(warning_id, admin.id)
    return BaseResponse(data=warning, message="Warning deactivated")
