"""
Client Profile Models
=====================

Customer profile with trust score, behavioural booking counters,
verification flags and suspension history.

Version: 0.1.0
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from services.trust_safety.models.base import DocumentModel, RiskLevel, SoftDeleteMixin, utcnow


DEFAULT_TRUST_SCORE = 50


class LoyaltyTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class ContactMethod(str, Enum):
    PHONE = "phone"
    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"


class SuspensionRecord(BaseModel):
    """One suspension period."""

    date: datetime = Field(default_factory=utcnow)
    reason: str = Field(..., min_length=1, max_length=500)
    duration: int = Field(..., ge=1, description="Suspension length in days")
    suspended_by: str | None = None
    resolved_at: datetime | None = None


class ClientProfile(DocumentModel, SoftDeleteMixin):
    """Client profile document."""

    profile_id: str

    # Derived, written only by the lifecycle services
    trust_score: float = Field(default=DEFAULT_TRUST_SCORE, ge=0, le=100)
    risk_level: RiskLevel = RiskLevel.LOW
    warnings_count: int = Field(default=0, ge=0)

    risk_factors: list[str] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)
    suspension_history: list[SuspensionRecord] = Field(default_factory=list)

    preferred_services: list[str] = Field(default_factory=list)
    preferred_providers: list[str] = Field(default_factory=list)
    preferred_contact_method: ContactMethod = ContactMethod.PHONE
    notes: str | None = Field(default=None, max_length=1000)

    average_rating: float = Field(default=0, ge=0, le=5)
    total_reviews: int = Field(default=0, ge=0)

    total_bookings: int = Field(default=0, ge=0)
    completed_bookings: int = Field(default=0, ge=0)
    cancelled_bookings: int = Field(default=0, ge=0)
    disputed_bookings: int = Field(default=0, ge=0)
    total_spent: float = Field(default=0, ge=0)
    average_booking_value: float = Field(default=0, ge=0)

    loyalty_tier: LoyaltyTier = LoyaltyTier.BRONZE
    member_since: datetime = Field(default_factory=utcnow)
    last_active_date: datetime = Field(default_factory=utcnow)

    is_phone_verified: bool = False
    is_email_verified: bool = False
    is_address_verified: bool = False

    @property
    def verified_count(self) -> int:
        return sum((self.is_phone_verified, self.is_email_verified, self.is_address_verified))

    @property
    def is_suspended(self) -> bool:
        return any(record.resolved_at is None for record in self.suspension_history)


class ClientProfileCreate(BaseModel):
    preferred_services: list[str] = Field(default_factory=list)
    preferred_providers: list[str] = Field(default_factory=list)
    preferred_contact_method: ContactMethod = ContactMethod.PHONE
    notes: str | None = Field(default=None, max_length=1000)


class ClientProfileUpdate(BaseModel):
    """
    Partial client update through the generic path.

    Owners may only touch their preferences; admins may also adjust
    loyalty, verification flags and risk factors.
    """

    preferred_services: list[str] | None = None
    preferred_providers: list[str] | None = None
    preferred_contact_method: ContactMethod | None = None
    notes: str | None = Field(default=None, max_length=1000)
    loyalty_tier: LoyaltyTier | None = None
    risk_factors: list[str] | None = None
    is_phone_verified: bool | None = None
    is_email_verified: bool | None = None
    is_address_verified: bool | None = None


class TrustScoreUpdate(BaseModel):
    # Range is checked by the service so the error type is a domain ValidationError
    trust_score: float
    reason: str | None = Field(default=None, max_length=500)


class SuspensionRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    duration: int = Field(..., ge=1, le=3650)


class BookingOutcome(str, Enum):
    """Outcome reported by the booking service for one booking."""

    CREATED = "created"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class BookingEvent(BaseModel):
    outcome: BookingOutcome
    amount: float = Field(default=0, ge=0)


class ClientStats(BaseModel):
    """Reliability metrics for one client."""

    client_id: str
    trust_score: float
    risk_level: RiskLevel
    verification_level: str
    total_bookings: int
    completion_rate: float
    cancellation_rate: float
    dispute_rate: float
    reliability_score: float
    average_rating: float
    total_reviews: int
    warnings_count: int
    is_suspended: bool
    member_since: datetime
