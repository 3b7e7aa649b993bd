"""
Document Store Interface
========================

Abstract base class for the document persistence collaborator.

The lifecycle engine only needs find-by-filter, count, insert, conditional
update, bulk update and bulk delete. Filters use the MongoDB query dialect
restricted to equality and the operators $ne, $gt, $gte, $lt, $lte, $in,
$nin, $exists and $or. Updates use $set, $unset and $inc.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from typing import Any

from shared.config import StoreMode, settings
from shared.logging import get_logger

logger = get_logger(__name__)

Document = dict[str, Any]
Filter = dict[str, Any]
SortSpec = list[tuple[str, int]]

ASCENDING = 1
DESCENDING = -1


class StoreError(Exception):
    """Base class for persistence failures."""


class DuplicateDocumentError(StoreError):
    """Insert violated a unique index."""

    def __init__(self, collection: str, key: dict[str, Any]) -> None:
        self.collection = collection
        self.key = key
        super().__init__(f"Duplicate document in {collection}: {key}")


class VersionConflictError(StoreError):
    """A versioned write lost the race against a concurrent writer."""

    def __init__(self, collection: str, document_id: str, expected_version: int) -> None:
        self.collection = collection
        self.document_id = document_id
        self.expected_version = expected_version
        super().__init__(
            f"Version conflict on {collection}/{document_id} (expected v{expected_version})"
        )


class DocumentStore(ABC):
    """
    Abstract base class for document stores.

    Implements the Strategy pattern for the MongoDB and in-memory backends.
    """

    @property
    @abstractmethod
    def mode(self) -> StoreMode:
        """Get the store mode."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Open connections to the backend."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release backend connections."""
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """Check backend health."""
        ...

    @abstractmethod
    async def create_indexes(self) -> None:
        """Ensure indexes (including unique constraints) exist."""
        ...

    # =========================================================================
    # Reads
    # =========================================================================

    @abstractmethod
    async def find_one(self, collection: str, filter: Filter) -> Document | None:
        """Return the first document matching the filter, or None."""
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        filter: Filter,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[Document]:
        """
        Return documents matching the filter.

        Args:
            collection: Collection name
            filter: Query filter
            sort: List of (field, direction) pairs
            skip: Number of documents to skip
            limit: Maximum documents to return (0 for no limit)
        """
        ...

    @abstractmethod
    async def count(self, collection: str, filter: Filter) -> int:
        """Count documents matching the filter."""
        ...

    # =========================================================================
    # Writes
    # =========================================================================

    @abstractmethod
    async def insert_one(self, collection: str, document: Document) -> str:
        """
        Insert a document.

        Returns:
            The document id

        Raises:
            DuplicateDocumentError: If a unique index is violated
        """
        ...

    @abstractmethod
    async def update_one(self, collection: str, filter: Filter, update: Document) -> int:
        """Apply an update to the first matching document. Returns the matched count."""
        ...

    @abstractmethod
    async def update_many(self, collection: str, filter: Filter, update: Document) -> int:
        """Apply an update to every matching document. Returns the modified count."""
        ...

    @abstractmethod
    async def delete_many(self, collection: str, filter: Filter) -> int:
        """Delete every matching document. Returns the deleted count."""
        ...


# =============================================================================
# Store Factory
# =============================================================================

_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """
    Get the document store instance.

    Returns:
        DocumentStore instance based on settings
    """
    global _store

    if _store is None:
        mode = settings.store.mode

        if mode == StoreMode.MOCK:
            from shared.store.mock import MockDocumentStore

            _store = MockDocumentStore()
        else:
            from shared.store.mongo import MongoDocumentStore

            _store = MongoDocumentStore()

        logger.info("document_store_initialized", mode=mode.value)

    return _store


def set_document_store(store: DocumentStore) -> None:
    """
    Set a custom document store (for testing).

    Args:
        store: DocumentStore instance to use
    """
    global _store
    _store = store
    logger.debug("document_store_set", mode=store.mode.value)


def reset_document_store() -> None:
    """Reset the document store (for testing)."""
    global _store
    _store = None
