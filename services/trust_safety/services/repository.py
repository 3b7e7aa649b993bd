"""
Entity Repository
=================

Typed access to one collection with optimistic concurrency.

Every write goes through ``mutate``: load the entity, apply a pure change
function, then write with a filter on the loaded ``version``. A concurrent
writer makes the conditional write match nothing, and the load-modify-save
cycle is retried with exponential backoff.

Version: 0.1.0
"""

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from services.trust_safety.models.base import DocumentModel, utcnow
from shared.config import settings
from shared.exceptions import ConflictError, NotFoundError
from shared.logging import get_logger
from shared.store import (
    DocumentStore,
    DuplicateDocumentError,
    Filter,
    SortSpec,
    VersionConflictError,
    get_document_store,
)


logger = get_logger(__name__)

M = TypeVar("M", bound=DocumentModel)

NOT_DELETED: Filter = {"is_deleted": {"$ne": True}}


class Repository(Generic[M]):
    """Collection-scoped repository for one document model."""

    def __init__(
        self,
        collection: str,
        model_cls: type[M],
        entity_name: str,
        store: DocumentStore | None = None,
    ) -> None:
        self.collection = collection
        self.model_cls = model_cls
        self.entity_name = entity_name
        self._store = store
        self._soft_delete = "is_deleted" in model_cls.model_fields

    @property
    def store(self) -> DocumentStore:
        return self._store or get_document_store()

    def _scoped(self, filter: Filter, include_deleted: bool) -> Filter:
        if include_deleted or not self._soft_delete:
            return filter
        return {**filter, **NOT_DELETED}

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_by_id(self, entity_id: str, include_deleted: bool = False) -> M | None:
        return await self.find_one({"_id": entity_id}, include_deleted=include_deleted)

    async def find_one(self, filter: Filter, include_deleted: bool = False) -> M | None:
        document = await self.store.find_one(self.collection, self._scoped(filter, include_deleted))
        return self.model_cls.from_document(document) if document else None

    async def get(self, entity_id: str, include_deleted: bool = False) -> M:
        """Load an entity or raise NotFoundError (soft-deleted counts as absent)."""
        entity = await self.find_by_id(entity_id, include_deleted=include_deleted)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    async def find(
        self,
        filter: Filter | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
        include_deleted: bool = False,
    ) -> list[M]:
        documents = await self.store.find(
            self.collection,
            self._scoped(filter or {}, include_deleted),
            sort=sort,
            skip=skip,
            limit=limit,
        )
        return [self.model_cls.from_document(d) for d in documents]

    async def count(self, filter: Filter | None = None, include_deleted: bool = False) -> int:
        return await self.store.count(self.collection, self._scoped(filter or {}, include_deleted))

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, entity: M) -> M:
        """Insert a new entity; a unique index violation raises ConflictError."""
        try:
            await self.store.insert_one(self.collection, entity.to_document())
        except DuplicateDocumentError as e:
            raise ConflictError(
                f"{self.entity_name} already exists",
                details={"collection": self.collection, "key": e.key},
            ) from e
        return entity

    async def update_many(self, filter: Filter, update: dict[str, Any]) -> int:
        return await self.store.update_many(self.collection, filter, update)

    async def delete_many(self, filter: Filter) -> int:
        return await self.store.delete_many(self.collection, filter)

    async def _replace(self, current: M, updated: M) -> M:
        """Conditional write keyed on the loaded version."""
        document = updated.to_document()
        document.pop("_id")
        document["version"] = current.version + 1
        document["updated_at"] = utcnow()

        try:
            matched = await self.store.update_one(
                self.collection,
                {"_id": current.id, "version": current.version},
                {"$set": document},
            )
        except DuplicateDocumentError as e:
            raise ConflictError(
                f"{self.entity_name} update violates a unique constraint",
                details={"collection": self.collection, "key": e.key},
            ) from e

        if matched == 0:
            raise VersionConflictError(self.collection, current.id, current.version)

        return self.model_cls.from_document({"_id": current.id, **document})

    @retry(
        retry=retry_if_exception_type(VersionConflictError),
        stop=stop_after_attempt(settings.store.max_update_retries),
        wait=wait_exponential(multiplier=0.01, min=0.01, max=0.5),
        before_sleep=lambda retry_state: logger.warning(
            "version_conflict_retry",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep,  # type: ignore[union-attr]
        ),
    )
    async def _mutate_once(
        self, entity_id: str, fn: Callable[[M], M], include_deleted: bool
    ) -> M:
        current = await self.get(entity_id, include_deleted=include_deleted)
        updated = fn(current)
        return await self._replace(current, updated)

    async def mutate(
        self,
        entity_id: str,
        fn: Callable[[M], M],
        include_deleted: bool = False,
    ) -> M:
        """
        Load-modify-save with compare-and-swap retry.

        Args:
            entity_id: Entity to change
            fn: Pure function from the loaded entity to its new state; domain
                errors it raises propagate without a retry or a write
            include_deleted: Allow operating on soft-deleted entities

        Returns:
            The persisted entity

        Raises:
            NotFoundError: Entity absent or soft-deleted
            ConflictError: Concurrent writers exhausted the retry budget
        """
        try:
            return await self._mutate_once(entity_id, fn, include_deleted)
        except RetryError as e:
            logger.error(
                "version_conflict_exhausted",
                collection=self.collection,
                entity_id=entity_id,
            )
            raise ConflictError(
                f"{self.entity_name} was modified concurrently, please retry",
                details={"collection": self.collection, "id": entity_id},
            ) from e
