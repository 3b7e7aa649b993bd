"""
File References
===============

Opaque attachment descriptors for evidence and identity documents. Only
size and MIME type are checked; contents are never fetched.

Version: 0.1.0
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from services.trust_safety.models.base import utcnow


MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
        "application/pdf",
    }
)


class FileReference(BaseModel):
    """Uploaded file metadata."""

    url: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_size: int = Field(..., ge=0, le=MAX_FILE_SIZE_BYTES)
    mime_type: str
    uploaded_at: datetime = Field(default_factory=utcnow)

    @field_validator("mime_type")
    @classmethod
    def check_mime_type(cls, v: str) -> str:
        """Restrict attachments to the image and PDF allowlist."""
        normalized = v.strip().lower()
        if normalized not in ALLOWED_MIME_TYPES:
            allowed = ", ".join(sorted(ALLOWED_MIME_TYPES))
            raise ValueError(f"Unsupported file type {v!r}; allowed: {allowed}")
        return normalized
