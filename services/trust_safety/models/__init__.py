"""
Trust & Safety Models
=====================

Pydantic models for the marketplace lifecycle engine.

Documents:
- profiles: Per-user marketplace profile
- provider_profiles: Provider operational and risk state
- client_profiles: Client trust score and behaviour counters
- warnings: Issued warnings and their lifecycle

Inputs:
- review: Star ratings and complaints feeding profile risk counters

Version: 0.1.0
"""

from services.trust_safety.models.base import (
    BulkItemResult,
    BulkOperationResult,
    DocumentModel,
    RiskLevel,
    max_risk,
    utcnow,
)
from services.trust_safety.models.client import (
    BookingEvent,
    BookingOutcome,
    ClientProfile,
    ClientProfileCreate,
    ClientProfileUpdate,
    ClientStats,
    LoyaltyTier,
    SuspensionRecord,
    SuspensionRequest,
    TrustScoreUpdate,
)
from services.trust_safety.models.files import (
    ALLOWED_MIME_TYPES,
    MAX_FILE_SIZE_BYTES,
    FileReference,
)
from services.trust_safety.models.review import (
    NEGATIVE_REVIEW_MAX_RATING,
    ComplaintRequest,
    FeedbackReceipt,
    ReviewSubmission,
)
from services.trust_safety.models.profile import (
    CompletenessReport,
    ModerationStatus,
    ModerationUpdate,
    Profile,
    ProfileCreate,
    ProfileUpdate,
    VerificationStatus,
)
from services.trust_safety.models.provider import (
    BulkRiskAssessmentRequest,
    MitigationMeasures,
    OperationalStatusUpdate,
    PerformanceMetrics,
    PerformanceMetricsUpdate,
    ProviderOperationalStatus,
    ProviderProfile,
    ProviderProfileCreate,
    ProviderProfileUpdate,
    ProviderRiskReport,
    RiskAssessmentUpdate,
    RiskFactors,
    WorkingHours,
)
from services.trust_safety.models.warning import (
    SeverityLevel,
    WarningCategory,
    WarningCreate,
    WarningRecord,
    WarningStatus,
    WarningUpdate,
)

__all__ = [
    # Base
    "DocumentModel",
    "RiskLevel",
    "max_risk",
    "utcnow",
    "BulkItemResult",
    "BulkOperationResult",
    # Files
    "FileReference",
    "MAX_FILE_SIZE_BYTES",
    "ALLOWED_MIME_TYPES",
    # Profile
    "Profile",
    "ProfileCreate",
    "ProfileUpdate",
    "ModerationStatus",
    "ModerationUpdate",
    "VerificationStatus",
    "CompletenessReport",
    # Provider
    "ProviderProfile",
    "ProviderProfileCreate",
    "ProviderProfileUpdate",
    "ProviderOperationalStatus",
    "OperationalStatusUpdate",
    "PerformanceMetrics",
    "PerformanceMetricsUpdate",
    "RiskFactors",
    "MitigationMeasures",
    "RiskAssessmentUpdate",
    "BulkRiskAssessmentRequest",
    "ProviderRiskReport",
    "WorkingHours",
    # Client
    "ClientProfile",
    "ClientProfileCreate",
    "ClientProfileUpdate",
    "ClientStats",
    "LoyaltyTier",
    "SuspensionRecord",
    "SuspensionRequest",
    "TrustScoreUpdate",
    "BookingEvent",
    "BookingOutcome",
    # Reviews
    "ReviewSubmission",
    "ComplaintRequest",
    "FeedbackReceipt",
    "NEGATIVE_REVIEW_MAX_RATING",
    # Warning
    "WarningRecord",
    "WarningCreate",
    "WarningUpdate",
    "WarningCategory",
    "SeverityLevel",
    "WarningStatus",
]
