"""
Mock Document Store
===================

In-memory document store for development and testing.

Evaluates the same filter and update dialect the MongoDB backend accepts
and enforces the same unique indexes. Data is lost on restart.

Version: 0.1.0
"""

import copy
import uuid
from collections.abc import Callable
from typing import Any

from shared.config import StoreMode
from shared.database.mongodb import Collections
from shared.logging import get_logger
from shared.store.client import (
    Document,
    DocumentStore,
    DuplicateDocumentError,
    Filter,
    SortSpec,
)

logger = get_logger(__name__)

_MISSING = object()

# Unique indexes mirrored from MongoDBClient.create_indexes
DEFAULT_UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    Collections.PROFILES: ("user_id",),
    Collections.PROVIDER_PROFILES: ("profile_id",),
    Collections.CLIENT_PROFILES: ("profile_id",),
}


def _get_path(document: Document, path: str) -> Any:
    """Resolve a dotted path, returning _MISSING when any segment is absent."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _set_path(document: Document, path: str, value: Any) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        nested = current.get(part)
        if not isinstance(nested, dict):
            nested = {}
            current[part] = nested
        current = nested
    current[parts[-1]] = value


def _unset_path(document: Document, path: str) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        current = current.get(part)
        if not isinstance(current, dict):
            return
    current.pop(parts[-1], None)


def _compare(value: Any, bound: Any, op: Callable[[Any, Any], bool]) -> bool:
    # Comparisons never match absent or null fields
    if value is _MISSING or value is None or bound is None:
        return False
    try:
        return op(value, bound)
    except TypeError:
        return False


def _equals(value: Any, expected: Any) -> bool:
    if value is _MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$ne": lambda v, x: not _equals(v, x),
    "$gt": lambda v, x: _compare(v, x, lambda a, b: a > b),
    "$gte": lambda v, x: _compare(v, x, lambda a, b: a >= b),
    "$lt": lambda v, x: _compare(v, x, lambda a, b: a < b),
    "$lte": lambda v, x: _compare(v, x, lambda a, b: a <= b),
    "$in": lambda v, x: any(_equals(v, item) for item in x),
    "$nin": lambda v, x: not any(_equals(v, item) for item in x),
    "$exists": lambda v, x: (v is not _MISSING) == bool(x),
}


def matches(document: Document, filter: Filter) -> bool:
    """Evaluate a query filter against a document."""
    for key, condition in filter.items():
        if key == "$or":
            if not any(matches(document, clause) for clause in condition):
                return False
            continue

        value = _get_path(document, key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            for op, operand in condition.items():
                if op not in _OPERATORS:
                    raise ValueError(f"Unsupported query operator: {op}")
                if not _OPERATORS[op](value, operand):
                    return False
        elif not _equals(value, condition):
            return False
    return True


def apply_update(document: Document, update: Document) -> None:
    """Apply $set / $unset / $inc operators in place."""
    for op, fields in update.items():
        if op == "$set":
            for path, value in fields.items():
                _set_path(document, path, copy.deepcopy(value))
        elif op == "$unset":
            for path in fields:
                _unset_path(document, path)
        elif op == "$inc":
            for path, amount in fields.items():
                current = _get_path(document, path)
                base = 0 if current is _MISSING or current is None else current
                _set_path(document, path, base + amount)
        else:
            raise ValueError(f"Unsupported update operator: {op}")


def _sort_key(path: str) -> Callable[[Document], tuple[bool, Any]]:
    def key(document: Document) -> tuple[bool, Any]:
        value = _get_path(document, path)
        if value is _MISSING or value is None:
            return (False, 0)
        return (True, value)

    return key


class MockDocumentStore(DocumentStore):
    """
    In-memory mock document store.

    Collections are dicts keyed by document id. Documents are deep-copied
    on the way in and out so callers never alias stored state.
    """

    def __init__(self, unique_fields: dict[str, tuple[str, ...]] | None = None) -> None:
        """Initialize mock store with empty in-memory collections."""
        self._collections: dict[str, dict[str, Document]] = {}
        self._unique_fields = unique_fields if unique_fields is not None else DEFAULT_UNIQUE_FIELDS
        self._connected = False
        logger.debug("mock_store_initialized")

    @property
    def mode(self) -> StoreMode:
        return StoreMode.MOCK

    async def connect(self) -> None:
        self._connected = True
        logger.info("mock_store_connected")

    async def close(self) -> None:
        self._connected = False
        logger.info("mock_store_closed")

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "mode": self.mode.value,
            "collections": {name: len(docs) for name, docs in self._collections.items()},
        }

    async def create_indexes(self) -> None:
        """Unique indexes are enforced on insert; nothing to build."""
        logger.debug("mock_store_indexes_ready", unique=list(self._unique_fields))

    def _collection(self, name: str) -> dict[str, Document]:
        return self._collections.setdefault(name, {})

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_one(self, collection: str, filter: Filter) -> Document | None:
        for document in self._collection(collection).values():
            if matches(document, filter):
                return copy.deepcopy(document)
        return None

    async def find(
        self,
        collection: str,
        filter: Filter,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[Document]:
        results = [doc for doc in self._collection(collection).values() if matches(doc, filter)]

        # Stable multi-key sort: apply keys from least to most significant
        for path, direction in reversed(sort or []):
            results.sort(key=_sort_key(path), reverse=direction < 0)

        if skip:
            results = results[skip:]
        if limit:
            results = results[:limit]
        return [copy.deepcopy(doc) for doc in results]

    async def count(self, collection: str, filter: Filter) -> int:
        return sum(1 for doc in self._collection(collection).values() if matches(doc, filter))

    # =========================================================================
    # Writes
    # =========================================================================

    def _check_unique(self, collection: str, document: Document, exclude_id: str | None) -> None:
        for field in self._unique_fields.get(collection, ()):
            value = _get_path(document, field)
            if value is _MISSING or value is None:
                continue
            for doc_id, existing in self._collection(collection).items():
                if doc_id != exclude_id and _get_path(existing, field) == value:
                    raise DuplicateDocumentError(collection, {field: value})

    async def insert_one(self, collection: str, document: Document) -> str:
        stored = copy.deepcopy(document)
        doc_id = str(stored.setdefault("_id", uuid.uuid4().hex))
        docs = self._collection(collection)

        if doc_id in docs:
            raise DuplicateDocumentError(collection, {"_id": doc_id})
        self._check_unique(collection, stored, exclude_id=None)

        docs[doc_id] = stored
        return doc_id

    async def update_one(self, collection: str, filter: Filter, update: Document) -> int:
        for doc_id, document in self._collection(collection).items():
            if matches(document, filter):
                candidate = copy.deepcopy(document)
                apply_update(candidate, update)
                self._check_unique(collection, candidate, exclude_id=doc_id)
                self._collection(collection)[doc_id] = candidate
                return 1
        return 0

    async def update_many(self, collection: str, filter: Filter, update: Document) -> int:
        modified = 0
        docs = self._collection(collection)
        for doc_id in [d for d, doc in docs.items() if matches(doc, filter)]:
            candidate = copy.deepcopy(docs[doc_id])
            apply_update(candidate, update)
            if candidate != docs[doc_id]:
                docs[doc_id] = candidate
                modified += 1
        return modified

    async def delete_many(self, collection: str, filter: Filter) -> int:
        docs = self._collection(collection)
        doomed = [doc_id for doc_id, doc in docs.items() if matches(doc, filter)]
        for doc_id in doomed:
            del docs[doc_id]
        return len(doomed)

    # =========================================================================
    # Test Helpers
    # =========================================================================

    def clear_all(self) -> None:
        """Clear all mock data (for testing)."""
        self._collections.clear()
        logger.debug("mock_store_cleared")

    def get_stats(self) -> dict[str, int]:
        """Get document counts per collection."""
        return {name: len(docs) for name, docs in self._collections.items()}
