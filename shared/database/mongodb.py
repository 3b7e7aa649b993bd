"""
MongoDB Client
==============

Async MongoDB client using Motor for profile, provider, client and
warning documents.

Version: 0.1.0
"""

import time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)


class Collections:
    """Collection names."""

    PROFILES = "profiles"
    PROVIDER_PROFILES = "provider_profiles"
    CLIENT_PROFILES = "client_profiles"
    WARNINGS = "warnings"


class MongoDBClient:
    """
    Async MongoDB client wrapper.

    Manages client lifecycle and provides database access.
    """

    _client: AsyncIOMotorClient | None = None  # type: ignore[type-arg]

    @classmethod
    def get_client(cls) -> AsyncIOMotorClient:  # type: ignore[type-arg]
        """Get or create the async client."""
        if cls._client is None:
            cls._client = AsyncIOMotorClient(
                settings.mongodb.uri,
                maxPoolSize=50,
                minPoolSize=5,
                serverSelectionTimeoutMS=5000,
                connectTimeoutMS=5000,
                tz_aware=True,
            )
            logger.info(
                "mongodb_client_created",
                host=settings.mongodb.host,
                database=settings.mongodb.db,
            )
        return cls._client

    @classmethod
    def get_database(cls, name: str | None = None) -> AsyncIOMotorDatabase:  # type: ignore[type-arg]
        """
        Get a database instance.

        Args:
            name: Database name (default from settings)

        Returns:
            AsyncIOMotorDatabase instance
        """
        client = cls.get_client()
        db_name = name or settings.mongodb.db
        return client[db_name]

    @classmethod
    async def close(cls) -> None:
        """Close the client and release all connections."""
        if cls._client is not None:
            cls._client.close()
            cls._client = None
            logger.info("mongodb_client_closed")

    @classmethod
    async def health_check(cls) -> dict[str, Any]:
        """
        Check database health.

        Returns:
            dict with status and server info
        """
        try:
            start = time.perf_counter()
            client = cls.get_client()
            result = await client.admin.command("ping")
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy" if result.get("ok") == 1 else "unhealthy",
                "latency_ms": round(latency_ms, 2),
                "database": settings.mongodb.db,
            }
        except PyMongoError as e:
            logger.error("mongodb_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }

    @classmethod
    async def create_indexes(cls) -> None:
        """Create indexes for all collections."""
        db = cls.get_database()

        profiles = db[Collections.PROFILES]
        await profiles.create_index("user_id", unique=True)
        await profiles.create_index("role")
        await profiles.create_index("is_deleted")
        await profiles.create_index("moderation_status")

        providers = db[Collections.PROVIDER_PROFILES]
        await providers.create_index("profile_id", unique=True)
        await providers.create_index("operational_status")
        await providers.create_index("risk_level")
        await providers.create_index("next_assessment_date")
        await providers.create_index([("performance_metrics.average_rating", DESCENDING)])

        clients = db[Collections.CLIENT_PROFILES]
        await clients.create_index("profile_id", unique=True)
        await clients.create_index("risk_level")
        await clients.create_index([("trust_score", DESCENDING)])
        await clients.create_index("loyalty_tier")
        await clients.create_index([("last_active_date", DESCENDING)])

        warnings = db[Collections.WARNINGS]
        await warnings.create_index(
            [
                ("status", ASCENDING),
                ("severity", ASCENDING),
                ("category", ASCENDING),
                ("is_active", ASCENDING),
            ]
        )
        await warnings.create_index([("user_id", ASCENDING), ("issued_at", DESCENDING)])
        await warnings.create_index([("profile_id", ASCENDING), ("is_active", ASCENDING)])
        await warnings.create_index("expires_at")
        await warnings.create_index("issued_by")

        logger.info("mongodb_indexes_created")


async def get_mongodb() -> AsyncIOMotorDatabase:  # type: ignore[type-arg]
    """
    Dependency that provides the MongoDB database.

    Usage:
        @app.get("/warnings")
        async def warnings(db: AsyncIOMotorDatabase = Depends(get_mongodb)):
            cursor = db.warnings.find({})
            return await cursor.to_list(100)
    """
    return MongoDBClient.get_database()
