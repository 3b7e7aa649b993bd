"""
Test Configuration
==================

Pytest fixtures for Trust & Safety tests.
"""

import os
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["STORE_MODE"] = "mock"

from services.trust_safety.models.client import ClientProfileCreate  # noqa: E402
from services.trust_safety.models.profile import ProfileCreate  # noqa: E402
from services.trust_safety.models.provider import ProviderProfileCreate  # noqa: E402
from services.trust_safety.services import (  # noqa: E402
    ClientService,
    ProfileService,
    ProviderService,
    WarningService,
)
from services.trust_safety.services.notifications import (  # noqa: E402
    LoggingNotifier,
    reset_notifier,
    set_notifier,
)
from shared.auth import UserRole, create_access_token  # noqa: E402
from shared.store import MockDocumentStore, reset_document_store, set_document_store  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def store() -> Generator[MockDocumentStore, None, None]:
    """Fresh in-memory document store installed as the global store."""
    mock = MockDocumentStore()
    set_document_store(mock)
    yield mock
    reset_document_store()


@pytest.fixture
def notifier() -> Generator[LoggingNotifier, None, None]:
    """Recording notifier installed as the global notifier."""
    recorder = LoggingNotifier()
    set_notifier(recorder)
    yield recorder
    reset_notifier()


@pytest.fixture
def profile_service(store: MockDocumentStore) -> ProfileService:
    return ProfileService(store)


@pytest.fixture
def provider_service(store: MockDocumentStore) -> ProviderService:
    return ProviderService(store)


@pytest.fixture
def client_service(store: MockDocumentStore) -> ClientService:
    return ClientService(store)


@pytest.fixture
def warning_service(store: MockDocumentStore) -> WarningService:
    return WarningService(store)


@pytest_asyncio.fixture
async def api_client(
    store: MockDocumentStore, notifier: LoggingNotifier
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Trust & Safety Service."""
    from services.trust_safety.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build bearer headers for a user id and role."""

    def make(user_id: str, role: UserRole = UserRole.CUSTOMER) -> dict[str, str]:
        token = create_access_token({"sub": user_id, "roles": [role.value]})
        return {"Authorization": f"Bearer {token}"}

    return make


# =============================================================================
# Seed helpers
# =============================================================================


@pytest_asyncio.fixture
async def customer_profile(profile_service: ProfileService) -> Any:
    return await profile_service.create("customer-1", ProfileCreate(role=UserRole.CUSTOMER))


@pytest_asyncio.fixture
async def provider_profile(profile_service: ProfileService) -> Any:
    return await profile_service.create("provider-1", ProfileCreate(role=UserRole.PROVIDER))


@pytest_asyncio.fixture
async def provider(provider_service: ProviderService, provider_profile: Any) -> Any:
    return await provider_service.create(
        provider_profile.id,
        ProviderProfileCreate(business_name="Kofi Plumbing", service_offerings=["plumbing"]),
        actor_id="provider-1",
        role=UserRole.PROVIDER,
    )


@pytest_asyncio.fixture
async def client_profile(client_service: ClientService, customer_profile: Any) -> Any:
    return await client_service.create(
        customer_profile.id,
        ClientProfileCreate(),
        actor_id="customer-1",
        role=UserRole.CUSTOMER,
    )
