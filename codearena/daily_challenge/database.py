"""
Daily challenge repository

One document per UTC date. Completions and the leaderboard are embedded
arrays, rewritten together through a version-checked update so that the
re-rank is always computed from the array it is written back to.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.database import cas_update
from codearena.errors import ChallengeNotFound
from codearena.utils import generate_id, serialize_many, serialize_mongo, start_of_utc_day, utcnow

# ==================== CREATE ====================


async def create_daily_challenge(db: AsyncIOMotorDatabase, problem: dict, day: datetime) -> dict:
    """Insert the challenge for `day`. Raises DuplicateKeyError if the date is taken."""
    day = start_of_utc_day(day)
    challenge = {
        "challenge_id": generate_id("CHL"),
        "date": day,
        "problem_id": problem["problem_id"],
        "difficulty": problem.get("difficulty"),
        "total_attempts": 0,
        "total_completions": 0,
        "completion_rate": 0.0,
        "completed_by": [],
        "leaderboard": [],
        "is_active": True,
        # live through the end of the following UTC day
        "expires_at": day + timedelta(days=2) - timedelta(milliseconds=1),
        "created_at": utcnow(),
        "version": 0,
    }
    await db.daily_challenges.insert_one(challenge)
    return serialize_mongo(challenge)


# ==================== QUERIES ====================


async def find_challenge_for_day(db: AsyncIOMotorDatabase, day: datetime, active_only: bool = True) -> Optional[dict]:
    start = start_of_utc_day(day)
    query = {"date": {"$gte": start, "$lt": start + timedelta(days=1)}}
    if active_only:
        query["is_active"] = True
    return serialize_mongo(await db.daily_challenges.find_one(query))


async def find_challenge_by_id(db: AsyncIOMotorDatabase, challenge_id: str) -> Optional[dict]:
    return serialize_mongo(await db.daily_challenges.find_one({"challenge_id": challenge_id}))


async def list_challenges(db: AsyncIOMotorDatabase, limit: int = 30) -> List[dict]:
    cursor = db.daily_challenges.find({}, {"completed_by": 0, "leaderboard": 0}).sort("date", -1).limit(limit)
    return serialize_many(await cursor.to_list(length=limit))


async def recent_problem_ids(db: AsyncIOMotorDatabase, since: datetime) -> List[str]:
    cursor = db.daily_challenges.find({"date": {"$gte": since}}, {"problem_id": 1})
    return [c["problem_id"] for c in await cursor.to_list(length=None)]


async def get_challenge_leaderboard(db: AsyncIOMotorDatabase, challenge_id: str) -> List[dict]:
    challenge = await find_challenge_by_id(db, challenge_id)
    if not challenge:
        raise ChallengeNotFound(f"Challenge not found: {challenge_id}")

    user_ids = [entry["user_id"] for entry in challenge["leaderboard"]]
    cursor = db.users.find({"user_id": {"$in": user_ids}}, {"_id": 0, "user_id": 1, "name": 1})
    names = {u["user_id"]: u.get("name") for u in await cursor.to_list(length=None)}

    return [
        {**entry, "name": names.get(entry["user_id"])}
        for entry in challenge["leaderboard"]
    ]


async def get_user_challenge_history(
    db: AsyncIOMotorDatabase, user_id: str, page: int = 1, limit: int = 10
) -> Tuple[List[dict], int]:
    query = {"completed_by.user_id": user_id}
    total = await db.daily_challenges.count_documents(query)

    cursor = db.daily_challenges.find(query).sort("date", -1).skip((max(page, 1) - 1) * limit).limit(limit)
    challenges = serialize_many(await cursor.to_list(length=limit))
    return challenges, total


# ==================== COMPLETION ====================


def rerank(leaderboard: List[dict]) -> None:
    """Sort by completion time and hand out ranks 1..N"""
    leaderboard.sort(key=lambda entry: entry["completed_at"])
    for index, entry in enumerate(leaderboard):
        entry["rank"] = index + 1


def completion_rate(completions: int, attempts: int) -> float:
    if not attempts:
        return 0.0
    return round(completions / attempts * 100, 2)


async def add_challenge_completion(
    db: AsyncIOMotorDatabase,
    challenge_id: str,
    user_id: str,
    submission_id: str,
    execution_time_ms: float,
    language: str,
    now: Optional[datetime] = None,
) -> Tuple[dict, bool]:
    """
    Record an accepted attempt on the challenge problem.

    First completion per user appends to completed_by and leaderboard and
    re-ranks the whole board; a repeat only bumps that user's attempts.
    Returns (challenge, is_new_completion).
    """
    now = now or utcnow()
    state = {}

    def mutate(challenge: dict):
        existing = next((c for c in challenge["completed_by"] if c["user_id"] == user_id), None)

        if existing:
            existing["attempts"] = existing.get("attempts", 1) + 1
            state["is_new"] = False
        else:
            challenge["completed_by"].append({
                "user_id": user_id,
                "completed_at": now,
                "submission_id": submission_id,
                "attempts": 1,
            })
            challenge["total_completions"] = challenge.get("total_completions", 0) + 1
            challenge["leaderboard"].append({
                "user_id": user_id,
                "completed_at": now,
                "execution_time_ms": execution_time_ms,
                "language": language,
                "rank": None,
            })
            rerank(challenge["leaderboard"])
            state["is_new"] = True

        challenge["total_attempts"] = challenge.get("total_attempts", 0) + 1
        challenge["completion_rate"] = completion_rate(challenge["total_completions"], challenge["total_attempts"])

    challenge = await cas_update(db.daily_challenges, {"challenge_id": challenge_id}, mutate)
    if challenge is None:
        raise ChallengeNotFound(f"Challenge not found: {challenge_id}")

    return serialize_mongo(challenge), state["is_new"]


# ==================== EXPIRY ====================


async def deactivate_expired(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> int:
    result = await db.daily_challenges.update_many(
        {"expires_at": {"$lt": now or utcnow()}, "is_active": True},
        {"$set": {"is_active": False}, "$inc": {"version": 1}},
    )
    return result.modified_count
