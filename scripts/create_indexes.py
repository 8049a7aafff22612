#!/usr/bin/env python3
"""
Create indexes for the update panel's MongoDB collections.

Usage:
    MONGODB_URI="mongodb+srv://..." python scripts/create_indexes.py

Defaults to mongodb://localhost:27017 / updatepanel if env vars are not set.
"""

import asyncio
import os
import logging

from motor.motor_asyncio import AsyncIOMotorClient
import pymongo

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
logger = logging.getLogger(__name__)

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DATABASE = os.getenv("MONGODB_DATABASE", "updatepanel")


async def main():
    logger.info("Connecting to MongoDB...")
    client = AsyncIOMotorClient(MONGODB_URI, serverSelectionTimeoutMS=10_000)
    db = client[MONGODB_DATABASE]

    # Trash listing is newest first
    await db["trash"].create_index(
        [("deletedAt", pymongo.DESCENDING)],
        name="deleted_at_desc",
    )
    logger.info("  ✓ trash.deletedAt (descending)")

    # Reports are always read per bot, newest first
    await db["reports"].create_index(
        [("botId", pymongo.ASCENDING), ("createdAt", pymongo.DESCENDING)],
        name="bot_created_desc",
    )
    logger.info("  ✓ reports.botId + createdAt")

    await db["bots"].create_index(
        [("ownerId", pymongo.ASCENDING)],
        name="owner_id",
    )
    logger.info("  ✓ bots.ownerId")

    for name in ("trash", "reports", "bots"):
        logger.info("Indexes on '%s.%s':", MONGODB_DATABASE, name)
        async for idx in db[name].list_indexes():
            logger.info("  - %s", idx["name"])

    client.close()


if __name__ == "__main__":
    asyncio.run(main())
