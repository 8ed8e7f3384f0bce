"""
Submission record store

A submission is created Pending (or Draft for autosave) and leaves that
state exactly once. Every terminal write is conditioned on the row still
being Pending, so a late or duplicated judge completion cannot overwrite
a verdict that has already been recorded.
"""

from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from codearena.errors import NotAuthorized, SubmissionNotFound
from codearena.submissions.models import SYSTEM_ERROR_STATUS, SubmissionKind, Verdict
from codearena.utils import generate_id, serialize_many, serialize_mongo, utcnow

# ==================== CREATE ====================


def new_submission_doc(
    user_id: str,
    problem_id: str,
    code: str,
    language: str,
    verdict: Verdict = Verdict.PENDING,
    kind: SubmissionKind = SubmissionKind.SUBMIT,
    now: Optional[datetime] = None,
) -> dict:
    now = now or utcnow()
    return {
        "submission_id": generate_id("SUB"),
        "user_id": user_id,
        "problem_id": problem_id,
        "code": code,
        "language": language,
        "kind": kind.value,
        "verdict": verdict.value,
        "status": 0,
        "stdout": "",
        "expected_output": "",
        "stderr": "",
        "compile_output": "",
        "execution_time_ms": 0.0,
        "memory_kb": 0,
        "is_accepted": False,
        "judge_token": None,
        "created_at": now,
        "updated_at": now,
        "finalized_at": None,
    }


async def create_submission(
    db: AsyncIOMotorDatabase,
    user_id: str,
    problem_id: str,
    code: str,
    language: str,
    kind: SubmissionKind = SubmissionKind.SUBMIT,
    now: Optional[datetime] = None,
) -> dict:
    """Create a Pending submission record"""
    submission = new_submission_doc(user_id, problem_id, code, language, kind=kind, now=now)
    await db.submissions.insert_one(submission)
    return serialize_mongo(submission)


# ==================== LIFECYCLE ====================


async def set_judge_token(db: AsyncIOMotorDatabase, submission_id: str, token: str) -> bool:
    """Record the judge token (Pending -> Dispatched)"""
    result = await db.submissions.update_one(
        {"submission_id": submission_id, "verdict": Verdict.PENDING.value},
        {"$set": {"judge_token": token, "updated_at": utcnow()}},
    )
    return result.modified_count > 0


async def mark_terminal(db: AsyncIOMotorDatabase, submission_id: str, outcome: dict) -> Optional[dict]:
    """
    Move a Pending submission to its terminal verdict.

    Returns the updated record, or None when the submission was no longer
    Pending (already finalized by an earlier completion).
    """
    verdict = Verdict(outcome["verdict"])
    if not verdict.is_terminal:
        raise ValueError(f"{verdict.value} is not a terminal verdict")

    now = utcnow()
    updates = {**outcome, "verdict": verdict.value, "updated_at": now, "finalized_at": now}

    doc = await db.submissions.find_one_and_update(
        {"submission_id": submission_id, "verdict": Verdict.PENDING.value},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_mongo(doc)


async def mark_system_error(db: AsyncIOMotorDatabase, submission_id: str, message: str) -> Optional[dict]:
    """Absorb a judge failure into the audit trail"""
    return await mark_terminal(db, submission_id, {
        "verdict": Verdict.SYSTEM_ERROR,
        "status": SYSTEM_ERROR_STATUS,
        "compile_output": message,
        "stderr": message,
        "is_accepted": False,
    })


# ==================== DRAFTS ====================


async def save_draft(db: AsyncIOMotorDatabase, user_id: str, problem_id: str, code: str, language: str) -> dict:
    """Upsert the single Draft row for (user, problem)"""
    now = utcnow()
    template = new_submission_doc(user_id, problem_id, code, language, verdict=Verdict.DRAFT, now=now)
    for key in ("user_id", "problem_id", "verdict", "code", "language", "updated_at"):
        template.pop(key)

    doc = await db.submissions.find_one_and_update(
        {"user_id": user_id, "problem_id": problem_id, "verdict": Verdict.DRAFT.value},
        {
            "$set": {"code": code, "language": language, "updated_at": now},
            "$setOnInsert": template,
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return serialize_mongo(doc)


async def get_draft(db: AsyncIOMotorDatabase, user_id: str, problem_id: str) -> Optional[dict]:
    doc = await db.submissions.find_one(
        {"user_id": user_id, "problem_id": problem_id, "verdict": Verdict.DRAFT.value}
    )
    return serialize_mongo(doc)


async def promote_draft(
    db: AsyncIOMotorDatabase,
    user_id: str,
    problem_id: str,
    kind: SubmissionKind = SubmissionKind.SUBMIT,
) -> Optional[dict]:
    """Finalize a draft: Draft -> Pending, after which it is immutable"""
    doc = await db.submissions.find_one_and_update(
        {"user_id": user_id, "problem_id": problem_id, "verdict": Verdict.DRAFT.value},
        {"$set": {"verdict": Verdict.PENDING.value, "kind": kind.value, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_mongo(doc)


# ==================== READS ====================


async def get_submission_by_id(db: AsyncIOMotorDatabase, submission_id: str) -> dict:
    doc = await db.submissions.find_one({"submission_id": submission_id})
    if not doc:
        raise SubmissionNotFound(submission_id)
    return serialize_mongo(doc)


async def has_earlier_accepted(db: AsyncIOMotorDatabase, submission: dict) -> bool:
    """Is there another accepted submission for this (user, problem) created before this one?"""
    query = {
        "user_id": submission["user_id"],
        "problem_id": submission["problem_id"],
        "is_accepted": True,
        "submission_id": {"$ne": submission["submission_id"]},
    }
    if submission.get("created_at"):
        query["created_at"] = {"$lt": submission["created_at"]}
    return await db.submissions.find_one(query) is not None


async def _attach_problems(db: AsyncIOMotorDatabase, submissions: List[dict]) -> List[dict]:
    problem_ids = list({s["problem_id"] for s in submissions})
    if not problem_ids:
        return submissions

    cursor = db.problems.find(
        {"problem_id": {"$in": problem_ids}},
        {"_id": 0, "problem_id": 1, "title": 1, "slug": 1, "difficulty": 1},
    )
    problems = {p["problem_id"]: p for p in await cursor.to_list(length=None)}
    for s in submissions:
        s["problem"] = problems.get(s["problem_id"])
    return submissions


async def get_submission_history(
    db: AsyncIOMotorDatabase,
    user_id: str,
    problem_id: Optional[str] = None,
    verdict: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Paginated submission history for a user, newest first"""
    page = max(page, 1)
    limit = max(min(limit, 200), 1)

    query = {"user_id": user_id}
    if problem_id:
        query["problem_id"] = problem_id
    if verdict and verdict != "all":
        query["verdict"] = verdict

    total = await db.submissions.count_documents(query)
    skip = (page - 1) * limit

    cursor = db.submissions.find(query).sort("created_at", -1).skip(skip).limit(limit)
    submissions = serialize_many(await cursor.to_list(length=limit))
    await _attach_problems(db, submissions)

    total_pages = (total + limit - 1) // limit
    return {
        "submissions": submissions,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next_page": page * limit < total,
            "has_prev_page": page > 1,
        },
    }


async def get_user_accepted_problems(db: AsyncIOMotorDatabase, user_id: str) -> List[str]:
    """Distinct problem ids the user has at least one accepted submission for"""
    return await db.submissions.distinct("problem_id", {"user_id": user_id, "is_accepted": True})


async def get_problem_submissions(db: AsyncIOMotorDatabase, problem_id: str, limit: int = 50) -> List[dict]:
    cursor = (
        db.submissions.find({"problem_id": problem_id, "verdict": {"$ne": Verdict.DRAFT.value}})
        .sort("created_at", -1)
        .limit(limit)
    )
    return serialize_many(await cursor.to_list(length=limit))


async def get_latest_accepted_submission(db: AsyncIOMotorDatabase, user_id: str, problem_id: str) -> Optional[dict]:
    cursor = (
        db.submissions.find({"user_id": user_id, "problem_id": problem_id, "is_accepted": True})
        .sort("created_at", -1)
        .limit(1)
    )
    docs = await cursor.to_list(length=1)
    return serialize_mongo(docs[0]) if docs else None


async def get_user_stats(db: AsyncIOMotorDatabase, user_id: str) -> dict:
    """Aggregate snapshot kept on the user document"""
    user = await db.users.find_one({"user_id": user_id}) or {}
    total = user.get("total_submissions_count", 0)
    accepted = user.get("accepted_submissions_count", 0)
    return {
        "solved_problems_count": user.get("solved_problems_count", 0),
        "total_submissions_count": total,
        "accepted_submissions_count": accepted,
        "accuracy": round(accepted / total * 100, 2) if total else 0.0,
        "easy_problems_solved": user.get("easy_problems_solved", 0),
        "medium_problems_solved": user.get("medium_problems_solved", 0),
        "hard_problems_solved": user.get("hard_problems_solved", 0),
        "rank_points": user.get("rank_points", 0),
        "current_streak": user.get("current_streak", 0),
        "longest_streak": user.get("longest_streak", 0),
        "daily_challenges_completed": user.get("daily_challenges_completed", 0),
    }


# ==================== DELETE ====================


async def delete_submission(db: AsyncIOMotorDatabase, submission_id: str, user_id: str) -> dict:
    submission = await db.submissions.find_one({"submission_id": submission_id})
    if not submission:
        raise SubmissionNotFound(submission_id)
    if submission["user_id"] != user_id:
        raise NotAuthorized("Unauthorized to delete this submission")

    await db.submissions.delete_one({"submission_id": submission_id})
    return {"message": "Submission deleted successfully"}
