import logging

import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING

from config import MONGO_URL, DB_NAME

logger = logging.getLogger(__name__)

client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]


def get_db():
    """FastAPI dependency returning the application database."""
    return db


async def ensure_indexes(database) -> None:
    """Create the indexes backing the uniqueness invariants.

    Two concurrent saves (or reviews) for the same pair race on these
    indexes; exactly one insert wins and the other raises DuplicateKeyError.
    """
    await database.users.create_index([("email", ASCENDING)], unique=True)
    await database.users.create_index([("username", ASCENDING)], unique=True)
    await database.saved_books.create_index(
        [("user", ASCENDING), ("openLibraryId", ASCENDING)], unique=True
    )
    await database.reviews.create_index(
        [("user", ASCENDING), ("book", ASCENDING)], unique=True
    )
    await database.reviews.create_index([("openLibraryId", ASCENDING)])
    await database.search_history.create_index(
        [("user", ASCENDING), ("searchedAt", DESCENDING)]
    )
    logger.info("Database indexes ensured")
