"""
Provider Profile Models
=======================

Service provider profile with operational status, performance metrics and
the risk assessment block (factors, mitigation measures, schedule).

Version: 0.1.0
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from services.trust_safety.models.base import DocumentModel, RiskLevel, SoftDeleteMixin
from services.trust_safety.models.profile import ContactDetails


HH_MM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

DEFAULT_ASSESSMENT_HORIZON_DAYS = 30
MIN_ASSESSMENT_HORIZON_DAYS = 1
MAX_ASSESSMENT_HORIZON_DAYS = 365


class ProviderOperationalStatus(str, Enum):
    """Provider operational states."""

    PROBATIONARY = "probationary"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class WorkingHours(BaseModel):
    """Opening hours for one day."""

    start: str = Field(..., pattern=HH_MM_PATTERN)
    end: str = Field(..., pattern=HH_MM_PATTERN)
    is_available: bool = True

    @model_validator(mode="after")
    def check_order(self) -> "WorkingHours":
        # Zero-padded HH:MM strings order the same as times
        if self.end <= self.start:
            raise ValueError("end must be later than start")
        return self


class PerformanceMetrics(BaseModel):
    """Bounded provider performance counters."""

    completion_rate: float = Field(default=0, ge=0, le=100)
    average_rating: float = Field(default=0, ge=0, le=5)
    total_reviews: int = Field(default=0, ge=0)
    total_jobs: int = Field(default=0, ge=0)
    response_time_minutes: float = Field(default=0, ge=0)
    average_response_time: float = Field(default=0, ge=0)
    cancellation_rate: float = Field(default=0, ge=0, le=100)
    dispute_rate: float = Field(default=0, ge=0, le=100)
    client_retention_rate: float = Field(default=0, ge=0, le=100)


class RiskFactors(BaseModel):
    """Observed risk signals feeding the provider risk score."""

    new_provider: bool = True
    low_completion_rate: bool = False
    high_cancellation_rate: bool = False
    recent_complaints: int = Field(default=0, ge=0)
    verification_gaps: list[str] = Field(default_factory=list)
    negative_reviews: int = Field(default=0, ge=0)


class MitigationMeasures(BaseModel):
    """Constraints imposed on a risky provider."""

    requires_deposit: bool = False
    limited_job_value: bool = False
    max_job_value: float | None = Field(default=None, gt=0)
    requires_supervision: bool = False
    frequent_checkins: bool = False
    client_confirmation_required: bool = False


class ProviderStatusChange(BaseModel):
    """Operational status audit entry."""

    from_status: ProviderOperationalStatus
    to_status: ProviderOperationalStatus
    reason: str | None = None
    changed_by: str
    changed_at: datetime


class ProviderProfile(DocumentModel, SoftDeleteMixin):
    """Provider profile document."""

    profile_id: str
    provider_contact_info: ContactDetails | None = None
    business_name: str | None = Field(default=None, max_length=100)

    operational_status: ProviderOperationalStatus = ProviderOperationalStatus.PROBATIONARY
    status_history: list[ProviderStatusChange] = Field(default_factory=list)

    service_offerings: list[str] = Field(default_factory=list)
    working_hours: dict[Weekday, WorkingHours] = Field(default_factory=dict)
    is_currently_available: bool = False
    is_always_available: bool = False

    require_initial_deposit: bool = False
    percentage_deposit: float | None = Field(default=None, gt=0, le=100)

    performance_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)

    # Risk block, written only by the lifecycle services
    risk_level: RiskLevel = RiskLevel.MEDIUM
    risk_score: int = Field(default=0, ge=0, le=100)
    risk_factors: RiskFactors = Field(default_factory=RiskFactors)
    mitigation_measures: MitigationMeasures = Field(default_factory=MitigationMeasures)
    last_risk_assessment_date: datetime | None = None
    next_assessment_date: datetime | None = None
    risk_assessed_by: str | None = None
    risk_assessment_notes: str | None = Field(default=None, max_length=1000)

    penalties_count: int = Field(default=0, ge=0)
    last_penalty_date: datetime | None = None

    @model_validator(mode="after")
    def check_deposit(self) -> "ProviderProfile":
        if self.require_initial_deposit and not self.percentage_deposit:
            raise ValueError("percentage_deposit is required when an initial deposit is required")
        return self

    def is_assessment_overdue(self, now: datetime) -> bool:
        return self.next_assessment_date is not None and self.next_assessment_date < now


class ProviderProfileCreate(BaseModel):
    """Payload for creating a provider profile."""

    provider_contact_info: ContactDetails | None = None
    business_name: str | None = Field(default=None, max_length=100)
    service_offerings: list[str] = Field(default_factory=list)
    working_hours: dict[Weekday, WorkingHours] = Field(default_factory=dict)
    is_always_available: bool = False
    require_initial_deposit: bool = False
    percentage_deposit: float | None = Field(default=None, gt=0, le=100)


class ProviderProfileUpdate(BaseModel):
    """Partial provider update through the generic path."""

    provider_contact_info: ContactDetails | None = None
    business_name: str | None = Field(default=None, max_length=100)
    service_offerings: list[str] | None = None
    is_always_available: bool | None = None
    require_initial_deposit: bool | None = None
    percentage_deposit: float | None = Field(default=None, gt=0, le=100)


class OperationalStatusUpdate(BaseModel):
    status: ProviderOperationalStatus
    reason: str | None = Field(default=None, max_length=500)


class PerformanceMetricsUpdate(BaseModel):
    """Metric deltas; values outside their bounds are clamped, not rejected."""

    completion_rate: float | None = None
    average_rating: float | None = None
    total_jobs: int | None = None
    response_time_minutes: float | None = None
    average_response_time: float | None = None
    cancellation_rate: float | None = None
    dispute_rate: float | None = None
    client_retention_rate: float | None = None


class RiskFactorsUpdate(BaseModel):
    new_provider: bool | None = None
    low_completion_rate: bool | None = None
    high_cancellation_rate: bool | None = None
    recent_complaints: int | None = Field(default=None, ge=0)
    verification_gaps: list[str] | None = None
    negative_reviews: int | None = Field(default=None, ge=0)


class MitigationMeasuresUpdate(BaseModel):
    requires_deposit: bool | None = None
    limited_job_value: bool | None = None
    max_job_value: float | None = Field(default=None, gt=0)
    requires_supervision: bool | None = None
    frequent_checkins: bool | None = None
    client_confirmation_required: bool | None = None


class RiskAssessmentUpdate(BaseModel):
    """Explicit risk assessment by an admin."""

    risk_level: RiskLevel | None = None
    risk_factors: RiskFactorsUpdate | None = None
    mitigation_measures: MitigationMeasuresUpdate | None = None
    notes: str | None = Field(default=None, max_length=1000)
    next_assessment_days: int = Field(
        default=DEFAULT_ASSESSMENT_HORIZON_DAYS,
        ge=MIN_ASSESSMENT_HORIZON_DAYS,
        le=MAX_ASSESSMENT_HORIZON_DAYS,
    )


class ScheduleAssessmentRequest(BaseModel):
    days_from_now: int = Field(
        default=DEFAULT_ASSESSMENT_HORIZON_DAYS,
        ge=MIN_ASSESSMENT_HORIZON_DAYS,
        le=MAX_ASSESSMENT_HORIZON_DAYS,
    )


class PenaltyRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class WorkingHoursUpdate(BaseModel):
    day: str
    hours: WorkingHours

    @field_validator("day")
    @classmethod
    def lowercase_day(cls, v: str) -> str:
        return v.strip().lower()


class BulkRiskAssessmentRequest(BaseModel):
    provider_ids: list[str] = Field(..., min_length=1, max_length=500)
    updates: RiskAssessmentUpdate


class ProviderRiskReport(BaseModel):
    """Current risk view of one provider."""

    provider_id: str
    risk_level: RiskLevel
    risk_score: int
    performance_risk_score: int
    is_assessment_overdue: bool
    last_risk_assessment_date: datetime | None
    next_assessment_date: datetime | None
    risk_assessed_by: str | None
    risk_factors: RiskFactors
    mitigation_measures: MitigationMeasures
    risk_assessment_notes: str | None
    penalties_count: int
    last_penalty_date: datetime | None
