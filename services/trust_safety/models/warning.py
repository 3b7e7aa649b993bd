"""
Warning Models
==============

Recorded policy or behaviour infractions against a user, with their own
severity and status lifecycle.

Version: 0.1.0
"""

import math
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, computed_field, model_validator

from services.trust_safety.models.base import DocumentModel, RiskLevel, UTCDateTime, utcnow
from services.trust_safety.models.files import FileReference


MAX_EVIDENCE_FILES = 10


class WarningCategory(str, Enum):
    """Warning categories."""

    POLICY_VIOLATION = "policy_violation"
    POOR_PERFORMANCE = "poor_performance"
    SAFETY_CONCERN = "safety_concern"
    HARASSMENT = "harassment"
    MISCONDUCT = "misconduct"
    ATTENDANCE_ISSUE = "attendance_issue"
    UNPROFESSIONAL_BEHAVIOR = "unprofessional_behavior"
    DATA_PRIVACY_VIOLATION = "data_privacy_violation"
    INAPPROPRIATE_LANGUAGE = "inappropriate_language"
    THEFT_OR_FRAUD = "theft_or_fraud"
    SUBSTANCE_ABUSE = "substance_abuse"
    CONFLICT_OF_INTEREST = "conflict_of_interest"
    INSUBORDINATION = "insubordination"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    QUALITY_ISSUE = "quality_issue"
    CUSTOMER_COMPLAINT = "customer_complaint"
    PROVIDER_COMPLAINT = "provider_complaint"
    BREACH_OF_CONFIDENTIALITY = "breach_of_confidentiality"


class SeverityLevel(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    SEVERE = "severe"


class WarningStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    EXPIRED = "expired"


# Default lifetime of a warning when no explicit expiry is given
EXPIRY_DAYS_BY_SEVERITY: dict[SeverityLevel, int] = {
    SeverityLevel.MINOR: 90,
    SeverityLevel.MAJOR: 180,
    SeverityLevel.SEVERE: 365,
}


def default_expiry(severity: SeverityLevel, issued_at: datetime) -> datetime:
    return issued_at + timedelta(days=EXPIRY_DAYS_BY_SEVERITY[severity])


class WarningRecord(DocumentModel):
    """Warning document."""

    user_id: str
    profile_id: str
    issued_by: str

    category: WarningCategory
    severity: SeverityLevel
    status: WarningStatus = WarningStatus.ACTIVE
    is_active: bool = True

    reason: str = Field(..., min_length=1, max_length=200)
    details: str | None = Field(default=None, max_length=1000)
    notes: str | None = Field(default=None, max_length=1000)
    evidence: list[FileReference] = Field(default_factory=list, max_length=MAX_EVIDENCE_FILES)

    issued_at: UTCDateTime = Field(default_factory=utcnow)
    expires_at: UTCDateTime | None = None
    auto_expire_at: datetime | None = None

    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None

    @model_validator(mode="after")
    def fill_expiry(self) -> "WarningRecord":
        if self.expires_at is None:
            self.expires_at = default_expiry(self.severity, self.issued_at)
        elif self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be after issued_at")
        # Mirrors expires_at; edits to the expiry move the sweep marker too
        self.auto_expire_at = self.expires_at
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_acknowledged(self) -> bool:
        return self.acknowledged_at is not None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_resolved(self) -> bool:
        return self.status == WarningStatus.RESOLVED

    @computed_field  # type: ignore[prop-decorator]
    @property
    def days_until_expiry(self) -> int | None:
        """Whole days left before expiry, rounded up; negative once past."""
        if self.expires_at is None:
            return None
        remaining = (self.expires_at - utcnow()).total_seconds() / 86400
        return math.ceil(remaining)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def risk_level(self) -> RiskLevel:
        from services.trust_safety.services.scoring import warning_risk_level

        return warning_risk_level(self.severity, self.category)

    def is_past_expiry(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at


class WarningCreate(BaseModel):
    """Payload for issuing a warning."""

    user_id: str
    profile_id: str
    category: WarningCategory
    severity: SeverityLevel
    reason: str = Field(..., min_length=1, max_length=200)
    details: str | None = Field(default=None, max_length=1000)
    notes: str | None = Field(default=None, max_length=1000)
    evidence: list[FileReference] = Field(default_factory=list, max_length=MAX_EVIDENCE_FILES)
    expires_at: UTCDateTime | None = None


class WarningUpdate(BaseModel):
    """Content edits allowed on an active warning."""

    category: WarningCategory | None = None
    severity: SeverityLevel | None = None
    reason: str | None = Field(default=None, min_length=1, max_length=200)
    details: str | None = Field(default=None, max_length=1000)
    notes: str | None = Field(default=None, max_length=1000)
    evidence: list[FileReference] | None = Field(default=None, max_length=MAX_EVIDENCE_FILES)
    expires_at: UTCDateTime | None = None


class ResolveRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=1000)


class BulkWarningRequest(BaseModel):
    warning_ids: list[str] = Field(..., min_length=1, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)


class WarningFilters(BaseModel):
    """Optional filters for warning listings."""

    status: WarningStatus | None = None
    severity: SeverityLevel | None = None
    category: WarningCategory | None = None
    is_active: bool | None = None
    acknowledged: bool | None = None
