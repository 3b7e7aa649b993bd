"""
Notification Tests
==================

Tests for notifiers, best-effort delivery and event builders.

Version: 0.1.0
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import BackgroundTasks

from services.trust_safety.models.base import RiskLevel, utcnow
from services.trust_safety.models.client import ClientProfile, SuspensionRecord
from services.trust_safety.models.provider import (
    ProviderOperationalStatus,
    ProviderProfile,
    ProviderStatusChange,
)
from services.trust_safety.models.warning import SeverityLevel, WarningCategory, WarningRecord
from services.trust_safety.services.notifications import (
    LoggingNotifier,
    Notification,
    NotificationEvent,
    WebhookNotifier,
    client_suspended,
    deliver,
    dispatch_notification,
    provider_risk_escalated,
    provider_status_changed,
    warning_issued,
)
from shared.config import settings


@pytest.fixture
def notification() -> Notification:
    return Notification(
        event=NotificationEvent.WARNING_ISSUED,
        recipient_id="user-1",
        subject="You have received a minor warning",
        payload={"warning_id": "w1"},
    )


def webhook_with(handler) -> WebhookNotifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebhookNotifier(url="http://relay.test/notify", sender="ts@test", client=client)


class TestLoggingNotifier:
    @pytest.mark.asyncio
    async def test_records_sent(self, notification: Notification) -> None:
        notifier = LoggingNotifier()

        assert await deliver(notification, notifier) is True
        assert notifier.sent == [notification]

    @pytest.mark.asyncio
    async def test_failing_notifier_is_logged(self, notification: Notification) -> None:
        notifier = MagicMock(spec=LoggingNotifier)
        notifier.send = AsyncMock(side_effect=RuntimeError("relay gone"))

        assert await deliver(notification, notifier) is False
        notifier.send.assert_awaited_once_with(notification)

    def test_dispatch_schedules_background_task(self, notification: Notification) -> None:
        background_tasks = MagicMock(spec=BackgroundTasks)

        dispatch_notification(background_tasks, notification)

        background_tasks.add_task.assert_called_once_with(deliver, notification)


class TestWebhookNotifier:
    """Tests for the HTTP relay notifier."""

    @pytest.mark.asyncio
    async def test_posts_json(self, notification: Notification) -> None:
        received: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(202)

        notifier = webhook_with(handler)
        delivered = await deliver(notification, notifier)
        await notifier.close()

        assert delivered is True
        assert received[0]["event"] == "warning_issued"
        assert received[0]["recipient_id"] == "user-1"
        assert received[0]["sender"] == "ts@test"

    @pytest.mark.asyncio
    async def test_server_error_is_logged_not_raised(self, notification: Notification) -> None:
        notifier = webhook_with(lambda request: httpx.Response(500))

        assert await deliver(notification, notifier) is False

    @pytest.mark.asyncio
    async def test_transport_error_retried(self, notification: Notification) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("relay down", request=request)
            return httpx.Response(200)

        assert await deliver(notification, webhook_with(handler)) is True
        assert calls == 2

    @pytest.mark.asyncio
    async def test_disabled_skips_delivery(
        self, notification: Notification, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        notifier = LoggingNotifier()
        monkeypatch.setattr(settings.notifications, "enabled", False)

        assert await deliver(notification, notifier) is False
        assert notifier.sent == []


class TestBuilders:
    def test_warning_issued(self) -> None:
        warning = WarningRecord(
            user_id="user-1",
            profile_id="p1",
            issued_by="admin-1",
            category=WarningCategory.HARASSMENT,
            severity=SeverityLevel.MAJOR,
            reason="Abusive messages",
        )

        notification = warning_issued(warning)

        assert notification.recipient_id == "user-1"
        assert notification.payload["severity"] == "major"
        assert notification.payload["expires_at"] == warning.expires_at.isoformat()

    def test_provider_status_changed(self) -> None:
        provider = ProviderProfile(profile_id="p1")
        change = ProviderStatusChange(
            from_status=ProviderOperationalStatus.ACTIVE,
            to_status=ProviderOperationalStatus.SUSPENDED,
            changed_by="admin-1",
            reason="Complaints",
            changed_at=utcnow(),
        )

        notification = provider_status_changed(provider, change, "user-9")

        assert notification.event == NotificationEvent.PROVIDER_STATUS_CHANGED
        assert notification.recipient_id == "user-9"
        assert notification.subject.endswith("suspended")

    def test_client_suspended(self) -> None:
        client = ClientProfile(profile_id="p1")
        record = SuspensionRecord(reason="Chargebacks", duration=14)

        notification = client_suspended(client, record, "user-9")

        assert notification.recipient_id == "user-9"
        assert notification.payload["duration_days"] == 14
        assert notification.to_dict()["event"] == "client_suspended"

    def test_provider_risk_escalated(self) -> None:
        provider = ProviderProfile(profile_id="p1", risk_level=RiskLevel.HIGH, penalties_count=3)

        notification = provider_risk_escalated(provider, "user-9")

        assert notification.recipient_id == "user-9"
        assert notification.payload["provider_id"] == provider.id
        assert notification.payload["risk_level"] == "high"
