"""
Shared Models
=============

Pydantic models shared across services.

Models:
- Response envelopes (BaseResponse, PaginatedResponse, ErrorResponse)
- Pagination parameters
- Health check response
"""

from shared.models.common import (
    MAX_PAGE_SIZE,
    BaseResponse,
    ErrorResponse,
    HealthResponse,
    PaginatedResponse,
    Pagination,
)

__all__ = [
    "BaseResponse",
    "PaginatedResponse",
    "Pagination",
    "ErrorResponse",
    "HealthResponse",
    "MAX_PAGE_SIZE",
]
