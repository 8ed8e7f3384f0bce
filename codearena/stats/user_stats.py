"""
User statistics updater

Runs after every terminal learner evaluation. The whole user aggregate is
rewritten through a version-checked update, so the solved-problem gate and
the counters it drives land together or not at all.
"""

from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.database import cas_update
from codearena.errors import ProblemNotFound, UserNotFound
from codearena.submissions.database import has_earlier_accepted
from codearena.utils import as_naive_utc, setup_logging, start_of_utc_day, utcnow

logger = setup_logging(__name__)

# ==================== RANK POINTS ====================

DIFFICULTY_FIELDS = {
    "easy": "easy_problems_solved",
    "medium": "medium_problems_solved",
    "hard": "hard_problems_solved",
}

RANK_WEIGHTS = {
    "easy_problems_solved": 10,
    "medium_problems_solved": 25,
    "hard_problems_solved": 50,
}


def calculate_rank_points(user: dict) -> int:
    """Easy=10, Medium=25, Hard=50 per solved problem"""
    return sum(user.get(field, 0) * weight for field, weight in RANK_WEIGHTS.items())


# ==================== STREAKS ====================


def apply_streak(user: dict, now: datetime) -> None:
    """
    Advance the activity streak for a submission made at `now`.

    Days are compared as UTC calendar dates: same day leaves the streak
    alone, the next day extends it, anything later restarts it at 1.
    """
    last = user.get("last_submission_date")

    if not last:
        user["current_streak"] = 1
        user["longest_streak"] = max(user.get("longest_streak", 0), 1)
    else:
        days = (start_of_utc_day(now) - start_of_utc_day(last)).days
        if days == 1:
            user["current_streak"] = user.get("current_streak", 0) + 1
            user["longest_streak"] = max(user.get("longest_streak", 0), user["current_streak"])
        elif days > 1:
            user["current_streak"] = 1
        # days <= 0: same day (or clock skew), nothing changes

    if not last or now > last:
        user["last_submission_date"] = now


# ==================== UPDATER ====================


async def on_terminal_verdict(
    db: AsyncIOMotorDatabase,
    user_id: str,
    problem_id: str,
    accepted: bool,
    submission_id: str,
    now: Optional[datetime] = None,
) -> dict:
    """
    Fold one terminal verdict into the user's aggregate.

    Returns {"first_acceptance": bool, "rank_points": int, ...}.
    Raises UserNotFound / ProblemNotFound when either side is missing.
    """
    now = as_naive_utc(now or utcnow())

    problem = await db.problems.find_one({"problem_id": problem_id})
    if not problem:
        raise ProblemNotFound(problem_id)

    earlier_accepted = False
    if accepted:
        submission = await db.submissions.find_one({"submission_id": submission_id}) or {
            "submission_id": submission_id, "user_id": user_id, "problem_id": problem_id,
        }
        earlier_accepted = await has_earlier_accepted(db, submission)

    difficulty_field = DIFFICULTY_FIELDS.get((problem.get("difficulty") or "").lower())
    outcome = {}

    def mutate(user: dict):
        outcome["first_acceptance"] = False
        user["total_submissions_count"] = user.get("total_submissions_count", 0) + 1

        if accepted:
            user["accepted_submissions_count"] = user.get("accepted_submissions_count", 0) + 1

            solved = user.setdefault("solved_problems", {})
            if problem_id not in solved and not earlier_accepted:
                solved[problem_id] = submission_id
                user["solved_problems_count"] = user.get("solved_problems_count", 0) + 1
                if difficulty_field:
                    user[difficulty_field] = user.get(difficulty_field, 0) + 1
                user["rank_points"] = calculate_rank_points(user)
                outcome["first_acceptance"] = True

            apply_streak(user, now)

        user["last_active_date"] = now

    user = await cas_update(db.users, {"user_id": user_id}, mutate)
    if user is None:
        raise UserNotFound(user_id)

    if outcome["first_acceptance"]:
        logger.info("User %s solved %s for the first time", user_id, problem_id)

    return {
        "first_acceptance": outcome["first_acceptance"],
        "solved_problems_count": user.get("solved_problems_count", 0),
        "rank_points": user.get("rank_points", 0),
        "current_streak": user.get("current_streak", 0),
        "longest_streak": user.get("longest_streak", 0),
    }
