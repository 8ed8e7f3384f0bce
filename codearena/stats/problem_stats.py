from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codearena.database import cas_update


def acceptance_rate(accepted: int, total: int) -> float:
    if not total:
        return 0.0
    return round(accepted / total * 100, 2)


async def on_terminal_verdict(db: AsyncIOMotorDatabase, problem_id: str, accepted: bool) -> Optional[dict]:
    """
    Bump the problem's submission counters and recompute its acceptance rate.
    A missing problem is a silent no-op.
    """
    def mutate(problem: dict):
        problem["total_submissions"] = problem.get("total_submissions", 0) + 1
        if accepted:
            problem["accepted_submissions"] = problem.get("accepted_submissions", 0) + 1
        problem["acceptance_rate"] = acceptance_rate(
            problem.get("accepted_submissions", 0), problem["total_submissions"]
        )

    problem = await cas_update(db.problems, {"problem_id": problem_id}, mutate)
    if problem is None:
        return None

    return {
        "total_submissions": problem["total_submissions"],
        "accepted_submissions": problem.get("accepted_submissions", 0),
        "acceptance_rate": problem["acceptance_rate"],
    }
