"""
Domain Exceptions
=================

Error taxonomy shared by the trust and safety services.

Every error carries a human readable message and a stable error code. The
HTTP layer maps each class to a status code; services raise them before any
write so a failed call never leaves a partial mutation behind.

Version: 0.1.0
"""

from typing import Any


class TrustSafetyError(Exception):
    """Base exception for all trust and safety errors."""

    error_code = "TRUST_SAFETY_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(TrustSafetyError):
    """Entity or profile absent, or soft-deleted."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, identifier: str) -> None:
        super().__init__(
            f"{entity} not found: {identifier}",
            details={"entity": entity, "id": identifier},
        )
        self.entity = entity
        self.identifier = identifier


class InvalidTransitionError(TrustSafetyError):
    """A state machine guard rejected the requested transition."""

    error_code = "INVALID_TRANSITION"
    status_code = 409


class AlreadyInStateError(TrustSafetyError):
    """The action would be a no-op because the entity is already in that state."""

    error_code = "ALREADY_IN_STATE"
    status_code = 409


class ValidationError(TrustSafetyError):
    """Malformed or out-of-range input."""

    error_code = "VALIDATION_ERROR"
    status_code = 400


class ConflictError(TrustSafetyError):
    """Unique constraint violated or concurrent writers exhausted the retry budget."""

    error_code = "CONFLICT"
    status_code = 409


class PermissionDeniedError(TrustSafetyError):
    """The actor may not perform this operation on this entity."""

    error_code = "PERMISSION_DENIED"
    status_code = 403
