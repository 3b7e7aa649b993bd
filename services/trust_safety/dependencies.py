"""
Trust & Safety Dependencies
===========================

FastAPI dependency providers for services and pagination.

Version: 0.1.0
"""

from fastapi import Query

from services.trust_safety.models.warning import (
    SeverityLevel,
    WarningCategory,
    WarningFilters,
    WarningStatus,
)
from services.trust_safety.services import (
    ClientService,
    ProfileService,
    ProviderService,
    WarningService,
)
from shared.models import MAX_PAGE_SIZE, Pagination
from shared.store import get_document_store


def get_profile_service() -> ProfileService:
    return ProfileService(get_document_store())


def get_provider_service() -> ProviderService:
    return ProviderService(get_document_store())


def get_client_service() -> ClientService:
    return ClientService(get_document_store())


def get_warning_service() -> WarningService:
    return WarningService(get_document_store())


def get_pagination(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
) -> Pagination:
    return Pagination(page=page, page_size=page_size)


def get_warning_filters(
    status: WarningStatus | None = Query(default=None),
    severity: SeverityLevel | None = Query(default=None),
    category: WarningCategory | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    acknowledged: bool | None = Query(default=None),
) -> WarningFilters:
    return WarningFilters(
        status=status,
        severity=severity,
        category=category,
        is_active=is_active,
        acknowledged=acknowledged,
    )
