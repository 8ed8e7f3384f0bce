"""
Daily challenge service

Generation, lookup and the completion reconciler driven by accepted
submissions. Nothing here schedules itself; `generate_if_absent` and
`deactivate_expired` are plain idempotent calls for whatever timer drives
them (see scheduler.py).
"""

from datetime import datetime, timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from codearena.config import DAILY_CHALLENGE_LOOKBACK_DAYS
from codearena.daily_challenge import database as repo
from codearena.daily_challenge.models import DIFFICULTY_ROTATION, CompletionResult, UserProgress
from codearena.database import SKIP, cas_update
from codearena.errors import ChallengeNotFound, NoProblemsAvailable
from codearena.utils import as_naive_utc, serialize_mongo, setup_logging, start_of_utc_day, utcnow

logger = setup_logging(__name__)

# ==================== GENERATION ====================


def pick_difficulty(day: datetime) -> str:
    return DIFFICULTY_ROTATION[day.timetuple().tm_yday % len(DIFFICULTY_ROTATION)]


async def _pick_problem(db: AsyncIOMotorDatabase, day: datetime) -> dict:
    difficulty = pick_difficulty(day)
    recent = await repo.recent_problem_ids(db, day - timedelta(days=DAILY_CHALLENGE_LOOKBACK_DAYS))

    # least viewed problem of the day's difficulty not featured in the lookback window
    for query in (
        {"problem_id": {"$nin": recent}, "difficulty": difficulty},
        {"difficulty": difficulty},
    ):
        candidates = await db.problems.find(query).sort("views", 1).limit(1).to_list(length=1)
        if candidates:
            return candidates[0]

    raise NoProblemsAvailable(f"No {difficulty} problems available for daily challenge")


async def generate_if_absent(db: AsyncIOMotorDatabase, day: Optional[datetime] = None) -> dict:
    """Return the challenge for `day`, creating it if nobody has yet"""
    day = start_of_utc_day(day or utcnow())

    existing = await repo.find_challenge_for_day(db, day, active_only=False)
    if existing:
        return existing

    problem = await _pick_problem(db, day)
    try:
        challenge = await repo.create_daily_challenge(db, problem, day)
    except DuplicateKeyError:
        # another request generated it first
        return await repo.find_challenge_for_day(db, day, active_only=False)

    logger.info(
        "Daily challenge %s generated for %s: %s (%s)",
        challenge["challenge_id"], day.date(), problem["problem_id"], challenge["difficulty"],
    )
    return challenge


async def get_today_challenge(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    challenge = await repo.find_challenge_for_day(db, now)
    if challenge:
        return challenge
    return await generate_if_absent(db, now)


async def deactivate_expired(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> int:
    count = await repo.deactivate_expired(db, now or utcnow())
    if count:
        logger.info("Deactivated %d expired daily challenge(s)", count)
    return count


# ==================== COMPLETION RECONCILER ====================


async def _record_user_daily_completion(db: AsyncIOMotorDatabase, user_id: str, now: datetime) -> None:
    """Count at most one daily-challenge completion per user per UTC day"""
    today = start_of_utc_day(now)

    def mutate(user: dict):
        last = user.get("last_daily_challenge_date")
        if last and start_of_utc_day(last) == today:
            return SKIP
        user["daily_challenges_completed"] = user.get("daily_challenges_completed", 0) + 1
        user["last_daily_challenge_date"] = now

    await cas_update(db.users, {"user_id": user_id}, mutate)


async def on_accepted(
    db: AsyncIOMotorDatabase,
    user_id: str,
    submission_id: str,
    problem_id: str,
    execution_time_ms: float,
    language: str,
    now: Optional[datetime] = None,
) -> Optional[CompletionResult]:
    """
    Credit an accepted submission against today's challenge.

    Returns None, touching nothing, when `problem_id` is not today's
    featured problem.
    """
    now = as_naive_utc(now or utcnow())

    try:
        challenge = await get_today_challenge(db, now)
    except NoProblemsAvailable as e:
        logger.warning("No daily challenge to credit: %s", e)
        return None

    if challenge["problem_id"] != problem_id:
        return None

    updated, is_new = await repo.add_challenge_completion(
        db, challenge["challenge_id"], user_id, submission_id, execution_time_ms, language, now
    )

    if is_new:
        await _record_user_daily_completion(db, user_id, now)

    completion = next(c for c in updated["completed_by"] if c["user_id"] == user_id)
    entry = next((e for e in updated["leaderboard"] if e["user_id"] == user_id), None)

    return CompletionResult(
        challenge_id=updated["challenge_id"],
        user_id=user_id,
        is_new_completion=is_new,
        attempts=completion["attempts"],
        rank=entry["rank"] if entry else None,
        total_completions=updated["total_completions"],
        total_attempts=updated["total_attempts"],
    )


# ==================== READS ====================


def user_progress(challenge: dict, user_id: Optional[str]) -> UserProgress:
    if not user_id:
        return UserProgress()

    completion = next((c for c in challenge.get("completed_by", []) if c["user_id"] == user_id), None)
    if not completion:
        return UserProgress()

    entry = next((e for e in challenge.get("leaderboard", []) if e["user_id"] == user_id), None)
    return UserProgress(
        has_completed=True,
        attempts=completion.get("attempts", 0),
        rank=entry["rank"] if entry else None,
    )


async def has_user_completed_today(db: AsyncIOMotorDatabase, user_id: str, now: Optional[datetime] = None) -> bool:
    challenge = await repo.find_challenge_for_day(db, now or utcnow())
    if not challenge:
        return False
    return user_progress(challenge, user_id).has_completed


async def get_today_for_user(db: AsyncIOMotorDatabase, user_id: Optional[str], now: Optional[datetime] = None) -> dict:
    challenge = await get_today_challenge(db, now)
    problem = serialize_mongo(await db.problems.find_one(
        {"problem_id": challenge["problem_id"]},
        {"test_cases": 0},
    ))

    return {
        "challenge": {
            "challenge_id": challenge["challenge_id"],
            "date": challenge["date"],
            "problem": problem,
            "difficulty": challenge["difficulty"],
            "total_attempts": challenge["total_attempts"],
            "total_completions": challenge["total_completions"],
            "completion_rate": challenge["completion_rate"],
            "expires_at": challenge["expires_at"],
            "participants_count": len(challenge["completed_by"]),
        },
        "user_progress": user_progress(challenge, user_id).model_dump(),
    }


async def get_challenge_by_date(db: AsyncIOMotorDatabase, day: datetime) -> dict:
    challenge = await repo.find_challenge_for_day(db, day, active_only=False)
    if not challenge:
        raise ChallengeNotFound("No challenge found for this date")
    return challenge


async def get_user_history(db: AsyncIOMotorDatabase, user_id: str, page: int = 1, limit: int = 10) -> dict:
    challenges, total = await repo.get_user_challenge_history(db, user_id, page, limit)

    history = []
    for challenge in challenges:
        completion = next((c for c in challenge["completed_by"] if c["user_id"] == user_id), {})
        entry = next((e for e in challenge["leaderboard"] if e["user_id"] == user_id), {})
        history.append({
            "challenge_id": challenge["challenge_id"],
            "date": challenge["date"],
            "difficulty": challenge["difficulty"],
            "problem_id": challenge["problem_id"],
            "completed_at": completion.get("completed_at"),
            "attempts": completion.get("attempts", 0),
            "rank": entry.get("rank"),
            "language": entry.get("language"),
            "execution_time_ms": entry.get("execution_time_ms"),
        })

    return {
        "history": history,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit if limit else 0,
        },
    }
