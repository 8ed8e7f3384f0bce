from datetime import timedelta

import pytest

from codearena.errors import NotAuthorized, SubmissionNotFound
from codearena.submissions import database as store
from codearena.submissions.models import SYSTEM_ERROR_STATUS, SubmissionKind, Verdict

from conftest import NOW


@pytest.mark.asyncio
async def test_terminal_transition_happens_once(db):
    submission = await store.create_submission(db, "USR_1", "PRB_1", "print(3)", "python", now=NOW)
    assert submission["verdict"] == "Pending"
    assert await store.set_judge_token(db, submission["submission_id"], "tok-1")

    first = await store.mark_terminal(db, submission["submission_id"], {"verdict": Verdict.ACCEPTED, "is_accepted": True})
    second = await store.mark_terminal(db, submission["submission_id"], {"verdict": Verdict.WRONG_ANSWER})

    assert first["verdict"] == "Accepted"
    assert second is None
    stored = await store.get_submission_by_id(db, submission["submission_id"])
    assert stored["verdict"] == "Accepted"
    assert stored["judge_token"] == "tok-1"
    assert not await store.set_judge_token(db, submission["submission_id"], "tok-2")


@pytest.mark.asyncio
async def test_system_error_carries_its_own_status(db):
    pending = await store.create_submission(db, "USR_1", "PRB_1", "print(3)", "python", now=NOW)
    failed = await store.create_submission(db, "USR_1", "PRB_1", "print(3)", "python", now=NOW)

    await store.mark_system_error(db, failed["submission_id"], "Judge rejected submission: HTTP 503")

    assert (await store.get_submission_by_id(db, pending["submission_id"]))["status"] == 0
    stored = await store.get_submission_by_id(db, failed["submission_id"])
    assert stored["verdict"] == "System Error"
    assert stored["status"] == SYSTEM_ERROR_STATUS
    assert stored["stderr"] == "Judge rejected submission: HTTP 503"
    assert stored["is_accepted"] is False


@pytest.mark.asyncio
async def test_mark_terminal_rejects_non_terminal_verdict(db):
    submission = await store.create_submission(db, "USR_1", "PRB_1", "print(3)", "python", now=NOW)

    with pytest.raises(ValueError):
        await store.mark_terminal(db, submission["submission_id"], {"verdict": Verdict.PENDING})


@pytest.mark.asyncio
async def test_draft_is_upserted_per_user_and_problem(db):
    first = await store.save_draft(db, "USR_1", "PRB_1", "print(1)", "python")
    second = await store.save_draft(db, "USR_1", "PRB_1", "console.log(2)", "javascript")

    assert first["submission_id"] == second["submission_id"]
    assert second["code"] == "console.log(2)"
    assert second["verdict"] == "Draft"
    assert await db.submissions.count_documents({}) == 1

    promoted = await store.promote_draft(db, "USR_1", "PRB_1", SubmissionKind.RUN)
    assert promoted["verdict"] == "Pending"
    assert promoted["kind"] == "run"
    assert await store.promote_draft(db, "USR_1", "PRB_1") is None


@pytest.mark.asyncio
async def test_history_is_paginated_newest_first(db, seed_problem):
    await seed_problem("PRB_1")
    for i in range(5):
        await store.create_submission(db, "USR_1", "PRB_1", f"print({i})", "python", now=NOW + timedelta(minutes=i))
    await store.create_submission(db, "USR_2", "PRB_1", "print(9)", "python", now=NOW)

    page = await store.get_submission_history(db, "USR_1", page=1, limit=2)

    assert [s["code"] for s in page["submissions"]] == ["print(4)", "print(3)"]
    assert page["submissions"][0]["problem"]["title"] == "Problem PRB_1"
    assert page["pagination"] == {
        "page": 1, "limit": 2, "total": 5, "total_pages": 3, "has_next_page": True, "has_prev_page": False,
    }


@pytest.mark.asyncio
async def test_accepted_reads(db):
    for problem_id, accepted in (("PRB_1", True), ("PRB_1", True), ("PRB_2", False), ("PRB_3", True)):
        submission = await store.create_submission(db, "USR_1", problem_id, "print(3)", "python", now=NOW)
        verdict = Verdict.ACCEPTED if accepted else Verdict.WRONG_ANSWER
        await store.mark_terminal(db, submission["submission_id"], {"verdict": verdict, "is_accepted": accepted})

    assert sorted(await store.get_user_accepted_problems(db, "USR_1")) == ["PRB_1", "PRB_3"]
    assert (await store.get_latest_accepted_submission(db, "USR_1", "PRB_1"))["is_accepted"]
    assert await store.get_latest_accepted_submission(db, "USR_1", "PRB_2") is None
    assert len(await store.get_problem_submissions(db, "PRB_1")) == 2


@pytest.mark.asyncio
async def test_user_stats_snapshot(db, seed_user):
    await seed_user("USR_1", total_submissions_count=4, accepted_submissions_count=1, rank_points=25)

    stats = await store.get_user_stats(db, "USR_1")

    assert stats["accuracy"] == 25.0
    assert stats["rank_points"] == 25
    assert stats["solved_problems_count"] == 0


@pytest.mark.asyncio
async def test_only_owner_can_delete(db):
    submission = await store.create_submission(db, "USR_1", "PRB_1", "print(3)", "python", now=NOW)

    with pytest.raises(NotAuthorized):
        await store.delete_submission(db, submission["submission_id"], "USR_2")

    await store.delete_submission(db, submission["submission_id"], "USR_1")
    with pytest.raises(SubmissionNotFound):
        await store.get_submission_by_id(db, submission["submission_id"])
