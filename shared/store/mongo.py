"""
MongoDB Document Store
======================

DocumentStore backed by motor through the shared MongoDBClient.

Version: 0.1.0
"""

from typing import Any

from pymongo.errors import DuplicateKeyError

from shared.config import StoreMode
from shared.database.mongodb import MongoDBClient
from shared.logging import get_logger
from shared.store.client import (
    Document,
    DocumentStore,
    DuplicateDocumentError,
    Filter,
    SortSpec,
)

logger = get_logger(__name__)


class MongoDocumentStore(DocumentStore):
    """Document store over a MongoDB database."""

    def __init__(self, database: str | None = None) -> None:
        self._database_name = database

    @property
    def mode(self) -> StoreMode:
        return StoreMode.MONGODB

    def _db(self) -> Any:
        return MongoDBClient.get_database(self._database_name)

    async def connect(self) -> None:
        MongoDBClient.get_client()

    async def close(self) -> None:
        await MongoDBClient.close()

    async def health_check(self) -> dict[str, Any]:
        health = await MongoDBClient.health_check()
        health["mode"] = self.mode.value
        return health

    async def create_indexes(self) -> None:
        await MongoDBClient.create_indexes()

    async def find_one(self, collection: str, filter: Filter) -> Document | None:
        return await self._db()[collection].find_one(filter)

    async def find(
        self,
        collection: str,
        filter: Filter,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[Document]:
        cursor = self._db()[collection].find(filter)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [document async for document in cursor]

    async def count(self, collection: str, filter: Filter) -> int:
        return await self._db()[collection].count_documents(filter)

    async def insert_one(self, collection: str, document: Document) -> str:
        try:
            result = await self._db()[collection].insert_one(document)
        except DuplicateKeyError as e:
            key = (e.details or {}).get("keyValue", {})
            logger.warning("mongodb_duplicate_key", collection=collection, key=key)
            raise DuplicateDocumentError(collection, key) from e
        return str(result.inserted_id)

    async def update_one(self, collection: str, filter: Filter, update: Document) -> int:
        try:
            result = await self._db()[collection].update_one(filter, update)
        except DuplicateKeyError as e:
            raise DuplicateDocumentError(collection, (e.details or {}).get("keyValue", {})) from e
        return result.matched_count

    async def update_many(self, collection: str, filter: Filter, update: Document) -> int:
        result = await self._db()[collection].update_many(filter, update)
        return result.modified_count

    async def delete_many(self, collection: str, filter: Filter) -> int:
        result = await self._db()[collection].delete_many(filter)
        return result.deleted_count
