"""
Notification Collaborator
=========================

Fire-and-forget user notifications for lifecycle events.

Notifiers:
- LoggingNotifier: records and logs notifications (default, tests)
- WebhookNotifier: POSTs to the configured email relay with retry

Delivery runs as a FastAPI background task after the state change has been
committed. A delivery failure is logged and never reaches the caller.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx
from fastapi import BackgroundTasks
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from services.trust_safety.models.base import utcnow
from services.trust_safety.models.client import ClientProfile, SuspensionRecord
from services.trust_safety.models.provider import ProviderProfile, ProviderStatusChange
from services.trust_safety.models.warning import WarningRecord
from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


class NotificationEvent(str, Enum):
    """User-facing lifecycle events."""

    WARNING_ISSUED = "warning_issued"
    WARNING_RESOLVED = "warning_resolved"
    PROVIDER_STATUS_CHANGED = "provider_status_changed"
    PROVIDER_RISK_ESCALATED = "provider_risk_escalated"
    CLIENT_SUSPENDED = "client_suspended"


@dataclass
class Notification:
    """A message for one recipient."""

    event: NotificationEvent
    recipient_id: str
    subject: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event.value,
            "recipient_id": self.recipient_id,
            "subject": self.subject,
            "payload": self.payload,
            "created_at": self.created_at.isoformat(),
        }


class Notifier(ABC):
    """Abstract notification sink."""

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """Deliver one notification."""
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


class LoggingNotifier(Notifier):
    """Logs notifications and keeps them in memory."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)
        logger.info(
            "notification_logged",
            notification_event=notification.event.value,
            recipient_id=notification.recipient_id,
            subject=notification.subject,
        )


class WebhookNotifier(Notifier):
    """Posts notifications as JSON to an email relay endpoint."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        sender: str = "",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.sender = sender
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            timeout = httpx.Timeout(self.timeout_seconds, connect=self.timeout_seconds)
            self._client = httpx.AsyncClient(
                timeout=timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.notifications.max_retries),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=10),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "notification_retry",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep,  # type: ignore[union-attr]
        ),
    )
    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        client = await self._get_client()
        response = await client.post(self.url, json=body)
        response.raise_for_status()
        return response

    async def send(self, notification: Notification) -> None:
        body = {"sender": self.sender, **notification.to_dict()}
        response = await self._post(body)
        logger.info(
            "notification_sent",
            notification_event=notification.event.value,
            recipient_id=notification.recipient_id,
            status=response.status_code,
        )


# =============================================================================
# Global notifier
# =============================================================================

_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    """Get the notifier chosen by configuration."""
    global _notifier

    if _notifier is None:
        config = settings.notifications
        if config.enabled and config.webhook_url:
            _notifier = WebhookNotifier(
                url=config.webhook_url,
                timeout_seconds=config.timeout_seconds,
                sender=config.sender,
            )
        else:
            _notifier = LoggingNotifier()

    return _notifier


def set_notifier(notifier: Notifier) -> None:
    """Set a custom notifier (for testing)."""
    global _notifier
    _notifier = notifier


def reset_notifier() -> None:
    global _notifier
    _notifier = None


async def deliver(notification: Notification, notifier: Notifier | None = None) -> bool:
    """
    Send a notification, logging any failure.

    Returns:
        True when the notification was delivered
    """
    if not settings.notifications.enabled:
        return False

    target = notifier or get_notifier()
    try:
        await target.send(notification)
    except Exception as e:
        # Committed state is the source of truth; delivery is best effort
        logger.error(
            "notification_failed",
            notification_event=notification.event.value,
            recipient_id=notification.recipient_id,
            error=str(e),
        )
        return False
    return True


def dispatch_notification(background_tasks: BackgroundTasks, notification: Notification) -> None:
    """Schedule delivery after the response is sent."""
    background_tasks.add_task(deliver, notification)


# =============================================================================
# Event builders
# =============================================================================


def warning_issued(warning: WarningRecord) -> Notification:
    return Notification(
        event=NotificationEvent.WARNING_ISSUED,
        recipient_id=warning.user_id,
        subject=f"You have received a {warning.severity.value} warning",
        payload={
            "warning_id": warning.id,
            "category": warning.category.value,
            "severity": warning.severity.value,
            "reason": warning.reason,
            "expires_at": warning.expires_at.isoformat() if warning.expires_at else None,
        },
    )


def warning_resolved(warning: WarningRecord) -> Notification:
    return Notification(
        event=NotificationEvent.WARNING_RESOLVED,
        recipient_id=warning.user_id,
        subject="A warning on your account has been resolved",
        payload={
            "warning_id": warning.id,
            "resolved_at": warning.resolved_at.isoformat() if warning.resolved_at else None,
        },
    )


def provider_status_changed(
    provider: ProviderProfile, change: ProviderStatusChange, user_id: str
) -> Notification:
    return Notification(
        event=NotificationEvent.PROVIDER_STATUS_CHANGED,
        recipient_id=user_id,
        subject=f"Your provider status is now {change.to_status.value}",
        payload={
            "provider_id": provider.id,
            "from_status": change.from_status.value,
            "to_status": change.to_status.value,
            "reason": change.reason,
        },
    )


def provider_risk_escalated(provider: ProviderProfile, user_id: str) -> Notification:
    measures = provider.mitigation_measures
    return Notification(
        event=NotificationEvent.PROVIDER_RISK_ESCALATED,
        recipient_id=user_id,
        subject=f"Your account risk level is now {provider.risk_level.value}",
        payload={
            "provider_id": provider.id,
            "risk_level": provider.risk_level.value,
            "penalties_count": provider.penalties_count,
            "max_job_value": measures.max_job_value,
            "requires_deposit": measures.requires_deposit,
        },
    )


def client_suspended(client: ClientProfile, record: SuspensionRecord, user_id: str) -> Notification:
    return Notification(
        event=NotificationEvent.CLIENT_SUSPENDED,
        recipient_id=user_id,
        subject="Your account has been suspended",
        payload={
            "client_id": client.id,
            "reason": record.reason,
            "duration_days": record.duration,
        },
    )
