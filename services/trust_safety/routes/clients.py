"""
Clients Routes
==============

API endpoints for client profiles, trust score, bookings and suspensions.

Version: 0.1.0
"""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from services.trust_safety.dependencies import get_client_service, get_pagination
from services.trust_safety.models.client import (
    BookingEvent,
    ClientProfile,
    ClientProfileCreate,
    ClientProfileUpdate,
    ClientStats,
    LoyaltyTier,
    SuspensionRequest,
    TrustScoreUpdate,
)
from services.trust_safety.models.review import ComplaintRequest, FeedbackReceipt, ReviewSubmission
from services.trust_safety.services import ClientService
from services.trust_safety.services.notifications import client_suspended, dispatch_notification
from shared.auth import User, UserRole, get_current_active_user, require_admin, require_roles
from shared.logging import get_logger
from shared.models import BaseResponse, PaginatedResponse, Pagination


logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=BaseResponse[ClientProfile], status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientProfileCreate,
    profile_id: str = Query(..., description="Customer-role profile to attach to"),
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.create(profile_id, data, user.id, user.role)
    return BaseResponse(data=client, message="Client profile created successfully")


# ============================================================================
# Finders
# ============================================================================


@router.get("/high-risk", response_model=PaginatedResponse[ClientProfile])
async def list_high_risk_clients(
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> PaginatedResponse[ClientProfile]:
    return await service.find_high_risk(pagination)


@router.get("/by-loyalty-tier/{tier}", response_model=PaginatedResponse[ClientProfile])
async def list_clients_by_loyalty_tier(
    tier: LoyaltyTier,
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> PaginatedResponse[ClientProfile]:
    return await service.find_by_loyalty_tier(tier, pagination)


@router.get("/by-trust-range", response_model=PaginatedResponse[ClientProfile])
async def list_clients_by_trust_range(
    min_score: float = Query(default=0),
    max_score: float = Query(default=100),
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> PaginatedResponse[ClientProfile]:
    return await service.find_by_trust_range(min_score, max_score, pagination)


@router.get("/active", response_model=PaginatedResponse[ClientProfile])
async def list_active_clients(
    pagination: Pagination = Depends(get_pagination),
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> PaginatedResponse[ClientProfile]:
    """Clients active in the last 30 days."""
    return await service.find_active(pagination)


@router.get("/statistics", response_model=BaseResponse[dict[str, Any]])
async def get_client_statistics(
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[dict[str, Any]]:
    return BaseResponse(data=await service.statistics())


@router.get("/by-profile/{profile_id}", response_model=BaseResponse[ClientProfile])
async def get_client_by_profile(
    profile_id: str,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    return BaseResponse(data=await service.view_by_profile(profile_id, user.id, user.role))


# ============================================================================
# Single client
# ============================================================================


@router.get("/{client_id}", response_model=BaseResponse[ClientProfile])
async def get_client(
    client_id: str,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    return BaseResponse(data=await service.view(client_id, user.id, user.role))


@router.patch("/{client_id}", response_model=BaseResponse[ClientProfile])
async def update_client(
    client_id: str,
    data: ClientProfileUpdate,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.update(client_id, data.model_dump(exclude_unset=True), user.id, user.role)
    return BaseResponse(data=client, message="Client profile updated successfully")


@router.delete("/{client_id}", response_model=BaseResponse[ClientProfile])
async def delete_client(
    client_id: str,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.soft_delete(client_id, user.id, user.role)
    return BaseResponse(data=client, message="Client profile deleted successfully")


@router.get("/{client_id}/stats", response_model=BaseResponse[ClientStats])
async def get_client_stats(
    client_id: str,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientStats]:
    """Reliability metrics, used by providers before accepting a job."""
    return BaseResponse(data=await service.view_stats(client_id, user.id, user.role))


@router.put("/{client_id}/trust-score", response_model=BaseResponse[ClientProfile])
async def update_trust_score(
    client_id: str,
    data: TrustScoreUpdate,
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.update_trust_score(client_id, data.trust_score, admin.id, data.reason)
    return BaseResponse(data=client, message="Trust score updated")


@router.post("/{client_id}/suspensions", response_model=BaseResponse[ClientProfile])
async def suspend_client(
    client_id: str,
    data: SuspensionRequest,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.add_suspension(client_id, data.reason, data.duration, admin.id)
    user_id = await service.owner_user_id(client)
    dispatch_notification(
        background_tasks, client_suspended(client, client.suspension_history[-1], user_id)
    )
    return BaseResponse(data=client, message="Client suspended")


@router.post("/{client_id}/suspensions/resolve", response_model=BaseResponse[ClientProfile])
async def resolve_suspension(
    client_id: str,
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.resolve_suspension(client_id, admin.id)
    return BaseResponse(data=client, message="Suspension resolved")


@router.post("/{client_id}/bookings", response_model=BaseResponse[ClientProfile])
async def record_booking(
    client_id: str,
    data: BookingEvent,
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    """Record a booking outcome reported by the booking service."""
    client = await service.record_booking(client_id, data)
    return BaseResponse(data=client)


@router.post("/{client_id}/refresh-warnings", response_model=BaseResponse[ClientProfile])
async def refresh_warnings_count(
    client_id: str,
    admin: User = Depends(require_admin),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    return BaseResponse(data=await service.refresh_warnings_count(client_id))


@router.post("/{client_id}/preferred-services/{service_id}", response_model=BaseResponse[ClientProfile])
async def add_preferred_service(
    client_id: str,
    service_id: str,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.add_preferred_service(client_id, service_id, user.id, user.role)
    return BaseResponse(data=client)


@router.delete(
    "/{client_id}/preferred-services/{service_id}", response_model=BaseResponse[ClientProfile]
)
async def remove_preferred_service(
    client_id: str,
    service_id: str,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.remove_preferred_service(client_id, service_id, user.id, user.role)
    return BaseResponse(data=client)


@router.post(
    "/{client_id}/preferred-providers/{provider_id}", response_model=BaseResponse[ClientProfile]
)
async def add_preferred_provider(
    client_id: str,
    provider_id: str,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.add_preferred_provider(client_id, provider_id, user.id, user.role)
    return BaseResponse(data=client)


@router.delete(
    "/{client_id}/preferred-providers/{provider_id}", response_model=BaseResponse[ClientProfile]
)
async def remove_preferred_provider(
    client_id: str,
    provider_id: str,
    user: User = Depends(get_current_active_user),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[ClientProfile]:
    client = await service.remove_preferred_provider(client_id, provider_id, user.id, user.role)
    return BaseResponse(data=client)


# ============================================================================
# Reviews and complaints
# ============================================================================

# Clients are rated and reported by the providers who served them
require_provider_or_admin = require_roles(
    [UserRole.PROVIDER.value, UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value]
)


def _receipt(client: ClientProfile) -> FeedbackReceipt:
    return FeedbackReceipt(
        entity_id=client.id,
        average_rating=client.average_rating,
        total_reviews=client.total_reviews,
    )


@router.post("/{client_id}/reviews", response_model=BaseResponse[FeedbackReceipt])
async def review_client(
    client_id: str,
    data: ReviewSubmission,
    user: User = Depends(require_provider_or_admin),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[FeedbackReceipt]:
    client = await service.record_review(client_id, data.rating, user.id)
    return BaseResponse(data=_receipt(client), message="Review recorded")


@router.post("/{client_id}/complaints", response_model=BaseResponse[FeedbackReceipt])
async def report_client(
    client_id: str,
    data: ComplaintRequest,
    user: User = Depends(require_provider_or_admin),
    service: ClientService = Depends(get_client_service),
) -> BaseResponse[FeedbackReceipt]:
    """Report a client; each complaint is kept as a risk factor."""
    client = await service.record_complaint(client_id, user.id, data.reason)
    return BaseResponse(data=_receipt(client), message="Complaint recorded")
