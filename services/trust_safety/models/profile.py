"""
Profile Models
==============

Per-user marketplace profile, role scoped, with Ghana-specific location
and contact formats.

Version: 0.1.0
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from services.trust_safety.models.base import DocumentModel, SoftDeleteMixin
from services.trust_safety.models.files import FileReference
from shared.auth.roles import UserRole


GHANA_POST_GPS_PATTERN = r"^[A-Z]{2}-\d{4}-\d{4}$"
GHANA_PHONE_PATTERN = r"^\+233[0-9]{9}$|^0[0-9]{9}$"


class VerificationStatus(str, Enum):
    """Identity verification state."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class ModerationStatus(str, Enum):
    """Content moderation state."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    HIDDEN = "hidden"
    FLAGGED = "flagged"


class IdType(str, Enum):
    """Accepted identity documents."""

    NATIONAL_ID = "national_id"
    PASSPORT = "passport"
    VOTERS_ID = "voters_id"
    DRIVERS_LICENSE = "drivers_license"
    NHIS = "nhis"


class GPSCoordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Location(BaseModel):
    """User location."""

    ghana_post_gps: str | None = Field(default=None, pattern=GHANA_POST_GPS_PATTERN)
    region: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    district: str | None = Field(default=None, max_length=100)
    nearby_landmark: str | None = Field(default=None, max_length=200)
    gps_coordinates: GPSCoordinates | None = None


class ContactDetails(BaseModel):
    """Phone and email contacts."""

    primary_contact: str | None = Field(default=None, pattern=GHANA_PHONE_PATTERN)
    secondary_contact: str | None = Field(default=None, pattern=GHANA_PHONE_PATTERN)
    business_email: str | None = Field(default=None, max_length=254)


class IdDetails(BaseModel):
    """Identity document reference."""

    id_type: IdType | None = None
    id_number: str | None = Field(default=None, max_length=50)
    id_file: FileReference | None = None


class SocialMediaHandles(BaseModel):
    facebook: str | None = None
    instagram: str | None = None
    twitter: str | None = None
    linkedin: str | None = None
    tiktok: str | None = None


class Profile(DocumentModel, SoftDeleteMixin):
    """Marketplace profile document."""

    user_id: str
    role: UserRole = UserRole.CUSTOMER
    bio: str | None = Field(default=None, max_length=500)
    location: Location | None = None
    contact_details: ContactDetails | None = None
    id_details: IdDetails | None = None
    social_media_handles: SocialMediaHandles | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    profile_picture: FileReference | None = None

    verification_status: VerificationStatus = VerificationStatus.PENDING
    moderation_status: ModerationStatus = ModerationStatus.PENDING
    moderated_by: str | None = None
    moderated_at: datetime | None = None
    moderation_notes: str | None = Field(default=None, max_length=1000)

    # Derived, written only by the lifecycle services
    warnings_count: int = Field(default=0, ge=0)
    completeness: int = Field(default=0, ge=0, le=100)

    is_active_in_marketplace: bool = True


class ProfileCreate(BaseModel):
    """Payload for creating the caller's profile."""

    role: UserRole = UserRole.CUSTOMER
    bio: str | None = Field(default=None, max_length=500)
    location: Location | None = None
    contact_details: ContactDetails | None = None
    id_details: IdDetails | None = None
    social_media_handles: SocialMediaHandles | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    profile_picture: FileReference | None = None


class ProfileUpdate(BaseModel):
    """Partial profile update; unset fields are left untouched."""

    role: UserRole | None = None
    bio: str | None = Field(default=None, max_length=500)
    location: Location | None = None
    contact_details: ContactDetails | None = None
    id_details: IdDetails | None = None
    social_media_handles: SocialMediaHandles | None = None
    preferences: dict[str, Any] | None = None
    profile_picture: FileReference | None = None
    verification_status: VerificationStatus | None = None
    is_active_in_marketplace: bool | None = None


class ModerationUpdate(BaseModel):
    status: ModerationStatus
    notes: str | None = Field(default=None, max_length=1000)


class CompletenessReport(BaseModel):
    """Completeness score with the fields still missing."""

    profile_id: str
    completeness: int
    missing_fields: list[str]
