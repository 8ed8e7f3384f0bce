"""
Mongo access: client bootstrap, indexes and the optimistic-concurrency
update used by every aggregate writer.

Aggregates (users, problems, daily_challenges) are read-modify-written as
whole documents. A write only lands if the document still carries the
version it was read at; otherwise it is re-read and the mutation re-applied.
"""

import copy
from typing import Callable, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from codearena.config import AGGREGATE_MAX_RETRIES, MONGO_DB_NAME, MONGO_URL
from codearena.errors import ConcurrencyConflict
from codearena.utils import setup_logging

logger = setup_logging(__name__)

_client: Optional[AsyncIOMotorClient] = None

# Returned by a mutator to leave the document untouched
SKIP = object()


def get_client() -> AsyncIOMotorClient:
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(MONGO_URL)
    return _client


def get_database() -> AsyncIOMotorDatabase:
    return get_client()[MONGO_DB_NAME]


# ==================== INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes the evaluation pipeline relies on"""
    await db.users.create_index("user_id", unique=True)
    await db.problems.create_index("problem_id", unique=True)
    await db.problems.create_index([("difficulty", ASCENDING), ("views", ASCENDING)])

    await db.submissions.create_index("submission_id", unique=True)
    await db.submissions.create_index([("user_id", ASCENDING), ("problem_id", ASCENDING)])
    await db.submissions.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.submissions.create_index([("problem_id", ASCENDING), ("is_accepted", ASCENDING)])

    await db.daily_challenges.create_index("challenge_id", unique=True)
    await db.daily_challenges.create_index("date", unique=True)
    await db.daily_challenges.create_index([("is_active", ASCENDING), ("expires_at", ASCENDING)])

    await db.audit_logs.create_index([("target_type", ASCENDING), ("target_id", ASCENDING)])

    logger.info("Indexes created")


# ==================== OPTIMISTIC UPDATES ====================

def _version_filter(doc: dict) -> dict:
    if "version" in doc:
        return {"version": doc["version"]}
    return {"version": {"$exists": False}}


async def cas_update(
    collection: AsyncIOMotorCollection,
    query: dict,
    mutate: Callable[[dict], object],
    max_retries: int = AGGREGATE_MAX_RETRIES,
) -> Optional[dict]:
    """
    Apply `mutate` to the document matching `query` and write it back
    atomically.

    `mutate` receives a private copy of the current document and edits it
    in place. It may return SKIP to abandon the write. The function is
    re-run from a fresh read whenever another writer got in first, so it
    must not have side effects beyond the document it is given.

    Returns the document as written, the unchanged document when the
    mutator skipped, or None when nothing matches `query`.
    """
    for attempt in range(max_retries):
        current = await collection.find_one(query)
        if current is None:
            return None

        updated = copy.deepcopy(current)
        if mutate(updated) is SKIP:
            return current

        updated.pop("_id", None)
        updated.pop("version", None)
        changes = {k: v for k, v in updated.items() if current.get(k) != v}

        result = await collection.update_one(
            {"_id": current["_id"], **_version_filter(current)},
            {"$set": changes, "$inc": {"version": 1}} if changes else {"$inc": {"version": 1}},
        )
        if result.matched_count == 1:
            updated["_id"] = current["_id"]
            updated["version"] = current.get("version", 0) + 1
            return updated

        logger.warning(
            "Concurrent update on %s %s, retrying (%d/%d)",
            collection.name, query, attempt + 1, max_retries,
        )

    raise ConcurrencyConflict(f"Could not update {collection.name} after {max_retries} attempts")
