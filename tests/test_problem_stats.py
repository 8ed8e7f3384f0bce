import pytest

from codearena.stats.problem_stats import acceptance_rate, on_terminal_verdict


def test_acceptance_rate():
    assert acceptance_rate(0, 0) == 0.0
    assert acceptance_rate(1, 3) == 33.33
    assert acceptance_rate(2, 2) == 100.0


@pytest.mark.asyncio
async def test_counters_and_rate(db, seed_problem):
    await seed_problem()

    await on_terminal_verdict(db, "PRB_1", True)
    await on_terminal_verdict(db, "PRB_1", False)
    result = await on_terminal_verdict(db, "PRB_1", False)

    assert result == {"total_submissions": 3, "accepted_submissions": 1, "acceptance_rate": 33.33}
    problem = await db.problems.find_one({"problem_id": "PRB_1"})
    assert problem["version"] == 3


@pytest.mark.asyncio
async def test_missing_problem_is_noop(db):
    assert await on_terminal_verdict(db, "PRB_404", True) is None
