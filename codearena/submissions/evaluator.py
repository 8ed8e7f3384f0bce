"""
Evaluation orchestrator

Pending -> Dispatched (judge token stored) -> terminal verdict, or
System Error when the judge cannot deliver one. Learner evaluations are
persisted before the judge is contacted so a crash leaves an auditable
Pending row; admin evaluations are test runs that never touch a
statistic.

After the terminal write the result fans out, in order, to the user
statistics, the problem statistics and (accepted only) the daily
challenge. Each updater is isolated: its failure is logged and reported
on the returned submission but never undoes the recorded verdict.
"""

from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.audit import log_audit
from codearena.daily_challenge import service as daily_challenge
from codearena.errors import InvalidSubmission, ProblemNotFound, UserNotFound
from codearena.judge import JudgeClient, JudgeResult
from codearena.stats import problem_stats, user_stats
from codearena.submissions import database as store
from codearena.submissions.models import (
    AUDIT_LABELS,
    TEST_RUN_LABEL,
    SubmissionKind,
    UserRole,
    Verdict,
    label_test_run,
    verdict_from_judge,
)
from codearena.utils import as_naive_utc, setup_logging, utcnow

logger = setup_logging(__name__)


# ==================== RESULT INTERPRETATION ====================


def interpret_result(result: JudgeResult) -> dict:
    """
    Turn a terminal judge result into submission fields.

    A judge "Accepted" whose output does not actually match is recorded as
    Wrong Answer.
    """
    verdict = verdict_from_judge(result.verdict)
    if verdict is Verdict.ACCEPTED and not result.is_accepted:
        logger.warning("Judge reported Accepted for %s but output differs, downgrading", result.token)
        verdict = Verdict.WRONG_ANSWER

    return {
        "verdict": verdict,
        "status": result.status_id,
        "stdout": result.stdout.strip(),
        "expected_output": result.expected_output.strip(),
        "stderr": result.stderr,
        "compile_output": result.compile_output,
        "execution_time_ms": result.time_ms,
        "memory_kb": result.memory_kb,
        "is_accepted": verdict is Verdict.ACCEPTED,
    }


# ==================== CONTEXT ====================


async def _load_context(db: AsyncIOMotorDatabase, user_id: str, problem_id: str):
    problem = await db.problems.find_one({"problem_id": problem_id})
    if not problem:
        raise ProblemNotFound(problem_id)

    user = await db.users.find_one({"user_id": user_id})
    if not user:
        raise UserNotFound(user_id)

    return problem, user


async def _audit(db, user: dict, action: str, target_type: str, target_id: Optional[str], metadata: dict):
    try:
        role = UserRole.from_user(user).value
        await log_audit(db, user["user_id"], role, action, target_type, target_id, metadata)
    except Exception:
        logger.exception("Could not write audit entry '%s' for %s", action, target_id)


# ==================== FAN-OUT ====================


async def _fan_out(db: AsyncIOMotorDatabase, submission: dict, now: datetime) -> dict:
    accepted = submission["is_accepted"]
    report = {"aggregate_errors": [], "statistics": None, "daily_challenge": None}

    steps = [
        ("user_statistics", lambda: user_stats.on_terminal_verdict(
            db, submission["user_id"], submission["problem_id"], accepted, submission["submission_id"], now,
        )),
        ("problem_statistics", lambda: problem_stats.on_terminal_verdict(db, submission["problem_id"], accepted)),
    ]
    if accepted:
        steps.append(("daily_challenge", lambda: daily_challenge.on_accepted(
            db,
            submission["user_id"],
            submission["submission_id"],
            submission["problem_id"],
            submission["execution_time_ms"],
            submission["language"],
            now,
        )))

    for name, step in steps:
        try:
            outcome = await step()
        except Exception as e:
            logger.exception("%s update failed for submission %s", name, submission["submission_id"])
            report["aggregate_errors"].append({"updater": name, "error": str(e)})
            continue

        if name == "user_statistics":
            report["statistics"] = outcome
        elif name == "daily_challenge" and outcome is not None:
            report["daily_challenge"] = outcome.to_dict()

    return report


# ==================== PIPELINE ====================


async def _judge_and_record(
    db: AsyncIOMotorDatabase,
    judge: JudgeClient,
    submission: dict,
    problem: dict,
    user: dict,
    kind: SubmissionKind,
    now: datetime,
) -> dict:
    submission_id = submission["submission_id"]

    try:
        token = await judge.submit(
            submission["code"],
            submission["language"],
            problem.get("sample_input") or "",
            problem.get("sample_output") or "",
        )
        await store.set_judge_token(db, submission_id, token)
        result = await judge.await_result(token)
    except Exception as e:
        logger.error("Judge failed for submission %s: %s", submission_id, e)
        await store.mark_system_error(db, submission_id, str(e))
        await _audit(db, user, AUDIT_LABELS[kind], "submission", submission_id, {
            "problem_id": problem["problem_id"],
            "verdict": Verdict.SYSTEM_ERROR.value,
            "error": str(e),
        })
        raise

    final = await store.mark_terminal(db, submission_id, interpret_result(result))
    if final is None:
        # someone else already recorded this submission's verdict
        logger.warning("Submission %s already finalized, skipping aggregate updates", submission_id)
        return await store.get_submission_by_id(db, submission_id)

    final.update(await _fan_out(db, final, now))

    await _audit(db, user, AUDIT_LABELS[kind], "submission", submission_id, {
        "problem_id": problem["problem_id"],
        "verdict": final["verdict"],
        "language": final["language"],
    })
    return final


async def _test_run(
    db: AsyncIOMotorDatabase,
    judge: JudgeClient,
    user: dict,
    problem: dict,
    code: str,
    language: str,
    kind: SubmissionKind,
    now: datetime,
) -> dict:
    """Judge against the sample only; nothing is persisted besides the audit entry"""
    token = await judge.submit(code, language, problem.get("sample_input") or "", problem.get("sample_output") or "")
    outcome = interpret_result(await judge.await_result(token))

    response = {
        "submission_id": None,
        "user_id": user["user_id"],
        "problem_id": problem["problem_id"],
        "code": code,
        "language": language,
        "kind": kind.value,
        "is_test_run": True,
        **outcome,
        "verdict": label_test_run(outcome["verdict"]),
        "judge_token": token,
        "created_at": now,
    }

    await _audit(db, user, TEST_RUN_LABEL, "problem", problem["problem_id"], {
        "verdict": response["verdict"],
        "language": language,
    })
    return response


async def evaluate_submission(
    db: AsyncIOMotorDatabase,
    judge: JudgeClient,
    user_id: str,
    problem_id: str,
    code: str,
    language: str,
    kind: SubmissionKind = SubmissionKind.SUBMIT,
    now: Optional[datetime] = None,
) -> dict:
    """
    Evaluate `code` for `problem_id` on behalf of `user_id`.

    Raises ProblemNotFound / UserNotFound / InvalidSubmission /
    UnsupportedLanguage before anything is written, and re-raises judge
    failures after the submission has been recorded as System Error.
    """
    if not user_id or not problem_id or not code or not language:
        raise InvalidSubmission("Missing required parameters for evaluating submission.")

    language = getattr(language, "value", language)
    now = as_naive_utc(now or utcnow())

    problem, user = await _load_context(db, user_id, problem_id)
    judge.validate(code, language, problem.get("sample_input") or "")

    if UserRole.from_user(user).is_privileged:
        return await _test_run(db, judge, user, problem, code, language, kind, now)

    submission = await store.create_submission(db, user_id, problem_id, code, language, kind, now)
    return await _judge_and_record(db, judge, submission, problem, user, kind, now)


async def run_code(
    db: AsyncIOMotorDatabase,
    judge: JudgeClient,
    user_id: str,
    problem_id: str,
    code: str,
    language: str,
    now: Optional[datetime] = None,
) -> dict:
    return await evaluate_submission(db, judge, user_id, problem_id, code, language, SubmissionKind.RUN, now)


async def finalize_draft(
    db: AsyncIOMotorDatabase,
    judge: JudgeClient,
    user_id: str,
    problem_id: str,
    now: Optional[datetime] = None,
) -> dict:
    """Submit the saved draft for (user, problem) through the normal pipeline"""
    now = as_naive_utc(now or utcnow())
    problem, user = await _load_context(db, user_id, problem_id)

    draft = await store.get_draft(db, user_id, problem_id)
    if not draft:
        raise InvalidSubmission("No draft saved for this problem")
    judge.validate(draft["code"], draft["language"], problem.get("sample_input") or "")

    if UserRole.from_user(user).is_privileged:
        return await _test_run(db, judge, user, problem, draft["code"], draft["language"], SubmissionKind.SUBMIT, now)

    submission = await store.promote_draft(db, user_id, problem_id)
    if not submission:
        raise InvalidSubmission("Draft was already finalized")
    return await _judge_and_record(db, judge, submission, problem, user, SubmissionKind.SUBMIT, now)
