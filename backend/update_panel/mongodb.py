"""
MongoDB connection module for the update panel.

Provides a lazy singleton Motor client. Connection is deferred until the
first operation, so the panel starts even if MongoDB is unreachable.
"""

import os
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None


def get_mongo_client(uri: Optional[str] = None) -> AsyncIOMotorClient:
    """Get or create the singleton MongoDB client.

    Uses ``uri`` or the MONGODB_URI env var (default: mongodb://localhost:27017).
    """
    global _client
    if _client is None:
        uri = uri or os.getenv("MONGODB_URI", "mongodb://localhost:27017")
        logger.info(f"Initialising MongoDB client with URI: {uri}")
        _client = AsyncIOMotorClient(uri, serverSelectionTimeoutMS=5000, tz_aware=True)
    return _client


def get_database(name: Optional[str] = None, uri: Optional[str] = None) -> AsyncIOMotorDatabase:
    """Database from MONGODB_DATABASE env var (default: updatepanel)."""
    client = get_mongo_client(uri)
    db_name = name or os.getenv("MONGODB_DATABASE", "updatepanel")
    return client[db_name]


def close_mongo_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
