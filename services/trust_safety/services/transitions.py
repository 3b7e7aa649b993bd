"""
Status Transition Rules
=======================

State machines and escalation rules for warnings and providers.

Warning workflow:
1. Issue -> Active
2. Resolve -> Resolved (terminal unless reactivated)
3. Expire sweep -> Expired (terminal)
4. Acknowledge is orthogonal to status and settable once

Provider escalation:
- >=3 penalties -> high risk, job value cap 2000, check-ins, client confirmation
- >=5 penalties -> critical risk, adds deposit and supervision, cap 500

Version: 0.1.0
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from services.trust_safety.models.base import RiskLevel, max_risk
from services.trust_safety.models.provider import (
    MitigationMeasures,
    ProviderOperationalStatus,
    ProviderProfile,
    ProviderStatusChange,
)
from services.trust_safety.models.warning import WarningRecord, WarningStatus
from services.trust_safety.services.scoring import penalty_risk_level
from shared.exceptions import AlreadyInStateError, InvalidTransitionError
from shared.logging import get_logger


logger = get_logger(__name__)


class WarningAction(str, Enum):
    """Warning workflow actions."""

    UPDATE = "update"
    RESOLVE = "resolve"
    EXPIRE = "expire"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"


@dataclass
class WarningWorkflow:
    """Warning state machine."""

    # Valid transitions
    transitions: dict[WarningStatus, dict[WarningAction, WarningStatus]] = field(
        default_factory=lambda: {
            WarningStatus.ACTIVE: {
                WarningAction.UPDATE: WarningStatus.ACTIVE,
                WarningAction.RESOLVE: WarningStatus.RESOLVED,
                WarningAction.EXPIRE: WarningStatus.EXPIRED,
                WarningAction.ACTIVATE: WarningStatus.ACTIVE,
                WarningAction.DEACTIVATE: WarningStatus.ACTIVE,
            },
            WarningStatus.RESOLVED: {
                WarningAction.ACTIVATE: WarningStatus.ACTIVE,
                WarningAction.DEACTIVATE: WarningStatus.RESOLVED,
            },
            WarningStatus.EXPIRED: {
                WarningAction.DEACTIVATE: WarningStatus.EXPIRED,
            },
        }
    )

    def can_transition(self, current: WarningStatus, action: WarningAction) -> bool:
        return action in self.transitions.get(current, {})

    def get_next_status(self, current: WarningStatus, action: WarningAction) -> WarningStatus | None:
        return self.transitions.get(current, {}).get(action)

    def get_available_actions(self, current: WarningStatus) -> list[WarningAction]:
        return list(self.transitions.get(current, {}).keys())

    def check(self, warning: WarningRecord, action: WarningAction, now: datetime) -> WarningStatus:
        """
        Validate an action against the warning's current state.

        Returns:
            The status the warning moves to

        Raises:
            InvalidTransitionError: The action is not allowed from this state
            AlreadyInStateError: The action would not change anything
        """
        if action == WarningAction.ACTIVATE:
            if warning.status == WarningStatus.EXPIRED or warning.is_past_expiry(now):
                raise InvalidTransitionError(
                    "Cannot activate an expired warning",
                    details={"warning_id": warning.id, "status": warning.status.value},
                )
            if warning.status == WarningStatus.ACTIVE and warning.is_active:
                raise AlreadyInStateError(
                    "Warning is already active", details={"warning_id": warning.id}
                )

        if action == WarningAction.DEACTIVATE and not warning.is_active:
            raise AlreadyInStateError(
                "Warning is already inactive", details={"warning_id": warning.id}
            )

        next_status = self.get_next_status(warning.status, action)
        if next_status is None:
            raise InvalidTransitionError(
                f"Cannot {action.value} a warning in status {warning.status.value}",
                details={
                    "warning_id": warning.id,
                    "status": warning.status.value,
                    "action": action.value,
                },
            )
        return next_status

    def apply(
        self,
        warning: WarningRecord,
        action: WarningAction,
        actor_id: str,
        now: datetime,
        notes: str | None = None,
    ) -> WarningRecord:
        """Apply a status action, returning the updated warning."""
        next_status = self.check(warning, action, now)
        changes: dict = {"status": next_status, "updated_at": now}

        if action == WarningAction.RESOLVE:
            changes.update(is_active=False, resolved_by=actor_id, resolved_at=now)
        elif action == WarningAction.EXPIRE:
            changes["is_active"] = False
        elif action == WarningAction.ACTIVATE:
            changes["is_active"] = True
            # Reopening a resolved warning clears its resolution
            changes.update(resolved_by=None, resolved_at=None)
        elif action == WarningAction.DEACTIVATE:
            changes["is_active"] = False

        if notes is not None:
            changes["notes"] = notes

        logger.debug(
            "warning_transition",
            warning_id=warning.id,
            action=action.value,
            from_status=warning.status.value,
            to_status=next_status.value,
        )
        return warning.model_copy(update=changes)


def acknowledge_warning(warning: WarningRecord, actor_id: str, now: datetime) -> WarningRecord:
    """Set the acknowledgement once; a second acknowledgement is rejected."""
    if warning.acknowledged_at is not None:
        raise AlreadyInStateError(
            "Warning has already been acknowledged",
            details={"warning_id": warning.id, "acknowledged_at": warning.acknowledged_at.isoformat()},
        )
    return warning.model_copy(
        update={"acknowledged_by": actor_id, "acknowledged_at": now, "updated_at": now}
    )


# =============================================================================
# Provider risk escalation
# =============================================================================


HIGH_RISK_JOB_VALUE_CAP = 2000.0
CRITICAL_RISK_JOB_VALUE_CAP = 500.0


def mitigation_for_level(level: RiskLevel) -> MitigationMeasures:
    """Minimum mitigation measures required at a risk level."""
    if level == RiskLevel.CRITICAL:
        return MitigationMeasures(
            requires_deposit=True,
            limited_job_value=True,
            max_job_value=CRITICAL_RISK_JOB_VALUE_CAP,
            requires_supervision=True,
            frequent_checkins=True,
            client_confirmation_required=True,
        )
    if level == RiskLevel.HIGH:
        return MitigationMeasures(
            limited_job_value=True,
            max_job_value=HIGH_RISK_JOB_VALUE_CAP,
            frequent_checkins=True,
            client_confirmation_required=True,
        )
    return MitigationMeasures()


def merge_mitigation(current: MitigationMeasures, required: MitigationMeasures) -> MitigationMeasures:
    """Combine two measure sets, keeping the stricter side of every field."""
    caps = [v for v in (current.max_job_value, required.max_job_value) if v is not None]
    return MitigationMeasures(
        requires_deposit=current.requires_deposit or required.requires_deposit,
        limited_job_value=current.limited_job_value or required.limited_job_value,
        max_job_value=min(caps) if caps else None,
        requires_supervision=current.requires_supervision or required.requires_supervision,
        frequent_checkins=current.frequent_checkins or required.frequent_checkins,
        client_confirmation_required=(
            current.client_confirmation_required or required.client_confirmation_required
        ),
    )


def escalate_for_penalties(
    current_level: RiskLevel,
    current_measures: MitigationMeasures,
    penalties_count: int,
) -> tuple[RiskLevel, MitigationMeasures]:
    """
    Risk level and measures after penalties accrue.

    Never lowers the current level or relaxes the current measures.
    """
    level = max_risk(current_level, penalty_risk_level(penalties_count))
    measures = merge_mitigation(current_measures, mitigation_for_level(level))
    return level, measures


def record_status_change(
    provider: ProviderProfile,
    to_status: ProviderOperationalStatus,
    actor_id: str,
    now: datetime,
    reason: str | None = None,
) -> ProviderStatusChange:
    """Audit entry for an operational status change. Any transition is allowed."""
    return ProviderStatusChange(
        from_status=provider.operational_status,
        to_status=to_status,
        reason=reason,
        changed_by=actor_id,
        changed_at=now,
    )


def crossed_escalation_threshold(penalties_count: int) -> bool:
    """True when the latest penalty moved the penalty floor to high or critical."""
    level = penalty_risk_level(penalties_count)
    return level.rank >= RiskLevel.HIGH.rank and level != penalty_risk_level(penalties_count - 1)
