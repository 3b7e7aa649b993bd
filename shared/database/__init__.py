"""
Database Module
===============

Async MongoDB client (motor) for the marketplace document collections.

Usage:
    from shared.database import MongoDBClient, get_mongodb

    db = MongoDBClient.get_database()
    await db.warnings.count_documents({"status": "active"})
"""

from shared.database.mongodb import (
    Collections,
    MongoDBClient,
    get_mongodb,
)


__all__ = [
    "Collections",
    "MongoDBClient",
    "get_mongodb",
]
