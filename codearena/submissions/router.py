from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.audit import get_audit_trail
from codearena.dependencies import get_current_user, get_db, require_admin
from codearena.errors import NotAuthorized
from codearena.judge import JudgeClient, get_judge_client
from codearena.submissions import database as store
from codearena.submissions import evaluator
from codearena.submissions.models import DraftSave, SubmissionCreate, UserRole

router = APIRouter(prefix="/submissions", tags=["Submissions"])


# ==================== EVALUATION ====================


@router.post("/submit")
async def submit_solution(
    submission: SubmissionCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge_client),
    user: dict = Depends(get_current_user),
):
    """
    Evaluate a solution against the problem and record the verdict.
    Admins get a test run that is never persisted.
    """
    result = await evaluator.evaluate_submission(
        db, judge, user["user_id"], submission.problem_id, submission.code, submission.language,
    )
    return {"success": True, "submission": result}


@router.post("/run")
async def run_solution(
    submission: SubmissionCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge_client),
    user: dict = Depends(get_current_user),
):
    result = await evaluator.run_code(
        db, judge, user["user_id"], submission.problem_id, submission.code, submission.language,
    )
    return {"success": True, "submission": result}


@router.get("/languages")
async def list_languages():
    return {"success": True, "languages": JudgeClient.available_languages()}


# ==================== DRAFTS ====================


@router.put("/draft/{problem_id}")
async def save_draft(
    problem_id: str,
    draft: DraftSave,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    saved = await store.save_draft(db, user["user_id"], problem_id, draft.code, draft.language.value)
    return {"success": True, "draft": saved}


@router.get("/draft/{problem_id}")
async def get_draft(
    problem_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return {"success": True, "draft": await store.get_draft(db, user["user_id"], problem_id)}


@router.post("/draft/{problem_id}/finalize")
async def finalize_draft(
    problem_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge_client),
    user: dict = Depends(get_current_user),
):
    result = await evaluator.finalize_draft(db, judge, user["user_id"], problem_id)
    return {"success": True, "submission": result}


# ==================== USER VIEWS ====================


@router.get("/user/accepted-problems")
async def accepted_problems(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    problem_ids = await store.get_user_accepted_problems(db, user["user_id"])
    return {"success": True, "accepted_problems": problem_ids, "count": len(problem_ids)}


@router.get("/user/stats")
async def user_stats(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return {"success": True, "stats": await store.get_user_stats(db, user["user_id"])}


@router.get("/problem/{problem_id}/accepted")
async def latest_accepted(
    problem_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Latest accepted submission of the current user for this problem"""
    submission = await store.get_latest_accepted_submission(db, user["user_id"], problem_id)
    return {"success": True, "submission": submission}


@router.get("/problems/{problem_id}/submissions")
async def problem_submissions(
    problem_id: str,
    limit: int = 50,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    submissions = await store.get_problem_submissions(db, problem_id, limit)
    return {"success": True, "submissions": submissions, "count": len(submissions)}


@router.get("/problems/{problem_id}/audit")
async def problem_audit(
    problem_id: str,
    limit: int = 100,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    """Test runs recorded against a problem"""
    entries = await get_audit_trail(db, "problem", problem_id, limit)
    return {"success": True, "audit": entries, "count": len(entries)}


@router.get("/{submission_id}/audit")
async def submission_audit(
    submission_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    entries = await get_audit_trail(db, "submission", submission_id)
    return {"success": True, "audit": entries, "count": len(entries)}


# ==================== HISTORY ====================


@router.get("/")
async def submission_history(
    problem_id: Optional[str] = None,
    verdict: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    history = await store.get_submission_history(db, user["user_id"], problem_id, verdict, page, limit)
    return {"success": True, **history}


@router.get("/{submission_id}")
async def get_submission(
    submission_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    submission = await store.get_submission_by_id(db, submission_id)
    if submission["user_id"] != user["user_id"] and not UserRole.from_user(user).is_privileged:
        raise NotAuthorized("Not authorized to view this submission")
    return {"success": True, "submission": submission}


@router.delete("/{submission_id}")
async def delete_submission(
    submission_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    result = await store.delete_submission(db, submission_id, user["user_id"])
    return {"success": True, **result}
