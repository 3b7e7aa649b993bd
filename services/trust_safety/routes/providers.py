"""
Providers Routes
================

API endpoints for provider profiles, risk assessment and penalties.

Version: 0.1.0
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from services.trust_safety.dependencies import get_pagination, get_provider_service
from services.trust_safety.models.base import BulkOperationResult, RiskLevel
from services.trust_safety.models.provider import (
    BulkRiskAssessmentRequest,
    OperationalStatusUpdate,
    PenaltyRequest,
    PerformanceMetricsUpdate,
    ProviderOperationalStatus,
    ProviderProfile,
    ProviderProfileCreate,
    ProviderProfileUpdate,
    ProviderRiskReport,
    RiskAssessmentUpdate,
    ScheduleAssessmentRequest,
    WorkingHoursUpdate,
)
from services.trust_safety.models.review import ComplaintRequest, FeedbackReceipt, ReviewSubmission
from services.trust_safety.services import ProviderService
from services.trust_safety.services.notifications import (
    dispatch_notification,
    provider_risk_escalated,
    provider_status_changed,
)
from services.trust_safety.services.transitions import crossed_escalation_threshold
from shared.auth import User, get_current_active_user, require_admin
from shared.logging import get_logger
from shared.models import BaseResponse, PaginatedResponse, Pagination


logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=BaseResponse[ProviderProfile], status_code=status.HTTP_201_CREATED)
async def create_provider(
    data: ProviderProfileCreate,
    profile_id: str = Query(..., description="Provider-role profile to attach to"),
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.create(profile_id, data, user.id, user.role)
    return BaseResponse(data=provider, message="Provider profile created successfully")


# ============================================================================
# Finders
# ============================================================================


@router.get("/available", response_model=PaginatedResponse[ProviderProfile])
async def list_available_providers(
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> PaginatedResponse[ProviderProfile]:
    """Providers currently taking bookings (admin)."""
    return await service.find_available(pagination)


@router.get("/top-rated", response_model=BaseResponse[list[ProviderProfile]])
async def list_top_rated_providers(
    limit: int = Query(default=10, ge=1, le=100),
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[list[ProviderProfile]]:
    return BaseResponse(data=await service.find_top_rated(limit))


@router.get("/high-risk", response_model=PaginatedResponse[ProviderProfile])
async def list_high_risk_providers(
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> PaginatedResponse[ProviderProfile]:
    return await service.find_high_risk(pagination)


@router.get("/overdue-assessments", response_model=BaseResponse[list[ProviderProfile]])
async def list_overdue_assessments(
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[list[ProviderProfile]]:
    return BaseResponse(data=await service.find_overdue_assessments())


@router.get("/statistics", response_model=BaseResponse[dict[str, Any]])
async def get_provider_statistics(
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[dict[str, Any]]:
    return BaseResponse(data=await service.statistics())


@router.get("/by-status/{operational_status}", response_model=PaginatedResponse[ProviderProfile])
async def list_providers_by_status(
    operational_status: ProviderOperationalStatus,
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> PaginatedResponse[ProviderProfile]:
    return await service.find_by_status(operational_status, pagination)


@router.get("/by-risk-level/{risk_level}", response_model=PaginatedResponse[ProviderProfile])
async def list_providers_by_risk_level(
    risk_level: RiskLevel,
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> PaginatedResponse[ProviderProfile]:
    return await service.find_by_risk_level(risk_level, pagination)


@router.get("/by-profile/{profile_id}", response_model=BaseResponse[ProviderProfile])
async def get_provider_by_profile(
    profile_id: str,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    return BaseResponse(data=await service.view_by_profile(profile_id, user.id, user.role))


# ============================================================================
# Bulk
# ============================================================================


@router.post("/bulk/risk-assessment", response_model=BaseResponse[BulkOperationResult])
async def bulk_update_risk_assessments(
    data: BulkRiskAssessmentRequest,
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[BulkOperationResult]:
    """Apply one assessment to many providers; failures are reported per id."""
    result = await service.bulk_update_risk_assessments(data.provider_ids, data.updates, admin.id)
    return BaseResponse(
        data=result,
        message=f"{result.successful} of {result.total_processed} providers assessed",
    )


# ============================================================================
# Single provider
# ============================================================================


@router.get("/{provider_id}", response_model=BaseResponse[ProviderProfile])
async def get_provider(
    provider_id: str,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    return BaseResponse(data=await service.view(provider_id, user.id, user.role))


@router.patch("/{provider_id}", response_model=BaseResponse[ProviderProfile])
async def update_provider(
    provider_id: str,
    data: ProviderProfileUpdate,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.update(
        provider_id, data.model_dump(exclude_unset=True), user.id, user.role
    )
    return BaseResponse(data=provider, message="Provider profile updated successfully")


@router.delete("/{provider_id}", response_model=BaseResponse[ProviderProfile])
async def delete_provider(
    provider_id: str,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.soft_delete(provider_id, user.id, user.role)
    return BaseResponse(data=provider, message="Provider profile deleted successfully")


@router.post("/{provider_id}/penalties", response_model=BaseResponse[ProviderProfile])
async def apply_penalty(
    provider_id: str,
    data: PenaltyRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    """Add a penalty; risk escalates at 3 and 5 penalties."""
    provider = await service.apply_penalty(provider_id, admin.id, data.reason)
    if crossed_escalation_threshold(provider.penalties_count):
        user_id = await service.owner_user_id(provider)
        dispatch_notification(background_tasks, provider_risk_escalated(provider, user_id))
    return BaseResponse(data=provider, message="Penalty applied")


@router.put("/{provider_id}/risk-assessment", response_model=BaseResponse[ProviderProfile])
async def update_risk_assessment(
    provider_id: str,
    data: RiskAssessmentUpdate,
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.update_risk_assessment(provider_id, data, admin.id)
    return BaseResponse(data=provider, message="Risk assessment updated")


@router.post("/{provider_id}/schedule-assessment", response_model=BaseResponse[ProviderProfile])
async def schedule_assessment(
    provider_id: str,
    data: ScheduleAssessmentRequest,
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.schedule_next_assessment(provider_id, admin.id, data.days_from_now)
    return BaseResponse(data=provider, message="Next assessment scheduled")


@router.get("/{provider_id}/risk-report", response_model=BaseResponse[ProviderRiskReport])
async def get_risk_report(
    provider_id: str,
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderRiskReport]:
    return BaseResponse(data=await service.risk_report(provider_id))


@router.patch("/{provider_id}/status", response_model=BaseResponse[ProviderProfile])
async def update_operational_status(
    provider_id: str,
    data: OperationalStatusUpdate,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.update_operational_status(
        provider_id, data.status, admin.id, data.reason
    )
    user_id = await service.owner_user_id(provider)
    dispatch_notification(
        background_tasks, provider_status_changed(provider, provider.status_history[-1], user_id)
    )
    return BaseResponse(data=provider, message="Operational status updated")


@router.post("/{provider_id}/availability/toggle", response_model=BaseResponse[ProviderProfile])
async def toggle_availability(
    provider_id: str,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.toggle_availability(provider_id, user.id, user.role)
    return BaseResponse(data=provider)


@router.patch("/{provider_id}/performance-metrics", response_model=BaseResponse[ProviderProfile])
async def update_performance_metrics(
    provider_id: str,
    data: PerformanceMetricsUpdate,
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.update_performance_metrics(provider_id, data)
    return BaseResponse(data=provider, message="Performance metrics updated")


@router.post("/{provider_id}/services/{service_id}", response_model=BaseResponse[ProviderProfile])
async def add_service_offering(
    provider_id: str,
    service_id: str,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.add_service_offering(provider_id, service_id, user.id, user.role)
    return BaseResponse(data=provider, message="Service offering added")


@router.delete("/{provider_id}/services/{service_id}", response_model=BaseResponse[ProviderProfile])
async def remove_service_offering(
    provider_id: str,
    service_id: str,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.remove_service_offering(provider_id, service_id, user.id, user.role)
    return BaseResponse(data=provider, message="Service offering removed")


@router.put("/{provider_id}/working-hours", response_model=BaseResponse[ProviderProfile])
async def update_working_hours(
    provider_id: str,
    data: WorkingHoursUpdate,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[ProviderProfile]:
    provider = await service.update_working_hours(
        provider_id, data.day, data.hours, user.id, user.role
    )
    return BaseResponse(data=provider, message="Working hours updated")


# ============================================================================
# Reviews and complaints
# ============================================================================


async def _notify_if_escalated(
    background_tasks: BackgroundTasks,
    service: ProviderService,
    before: RiskLevel,
    provider: ProviderProfile,
) -> None:
    if provider.risk_level.rank > before.rank:
        user_id = await service.owner_user_id(provider)
        dispatch_notification(background_tasks, provider_risk_escalated(provider, user_id))


def _receipt(provider: ProviderProfile) -> FeedbackReceipt:
    metrics = provider.performance_metrics
    return FeedbackReceipt(
        entity_id=provider.id,
        average_rating=metrics.average_rating,
        total_reviews=metrics.total_reviews,
    )


@router.post("/{provider_id}/reviews", response_model=BaseResponse[FeedbackReceipt])
async def review_provider(
    provider_id: str,
    data: ReviewSubmission,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[FeedbackReceipt]:
    """Rate a provider; low ratings count as negative reviews."""
    before = (await service.get(provider_id)).risk_level
    provider = await service.record_review(provider_id, data.rating, user.id)
    await _notify_if_escalated(background_tasks, service, before, provider)
    return BaseResponse(data=_receipt(provider), message="Review recorded")


@router.post("/{provider_id}/complaints", response_model=BaseResponse[FeedbackReceipt])
async def report_provider(
    provider_id: str,
    data: ComplaintRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_active_user),
    service: ProviderService = Depends(get_provider_service),
) -> BaseResponse[FeedbackReceipt]:
    before = (await service.get(provider_id)).risk_level
    provider = await service.record_complaint(provider_id, user.id, data.reason)
    await _notify_if_escalated(background_tasks, service, before, provider)
    return BaseResponse(data=_receipt(provider), message="Complaint recorded")
