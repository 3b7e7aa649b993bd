"""
Document Store Module
=====================

Persistence abstraction for the lifecycle engine.

Supports:
- MongoDB (motor) for deployed environments
- In-memory mock for development and tests

Usage:
    from shared.store import get_document_store

    store = get_document_store()
    warning = await store.find_one("warnings", {"_id": warning_id})
    expired = await store.update_many(
        "warnings",
        {"status": "active", "expires_at": {"$lte": now}},
        {"$set": {"status": "expired", "is_active": False}},
    )
"""

from shared.store.client import (
    ASCENDING,
    DESCENDING,
    Document,
    DocumentStore,
    DuplicateDocumentError,
    Filter,
    SortSpec,
    StoreError,
    VersionConflictError,
    get_document_store,
    reset_document_store,
    set_document_store,
)
from shared.store.mock import MockDocumentStore

__all__ = [
    # Client
    "DocumentStore",
    "get_document_store",
    "set_document_store",
    "reset_document_store",
    # Types
    "Document",
    "Filter",
    "SortSpec",
    "ASCENDING",
    "DESCENDING",
    # Errors
    "StoreError",
    "DuplicateDocumentError",
    "VersionConflictError",
    # Implementations
    "MockDocumentStore",
]
