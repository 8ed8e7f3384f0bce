from datetime import datetime

import httpx
import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from codearena.database import create_indexes
from codearena.judge import JudgeClient
from codearena.judge.models import STATUS_VERDICTS

NOW = datetime(2024, 3, 15, 12, 0, 0)


def judge_response(status_id: int, stdout: str = "3\n", expected_output: str = "3", **extra) -> dict:
    verdict = STATUS_VERDICTS.get(status_id)
    return {
        "status": {"id": status_id, "description": verdict.value if verdict else "Mystery"},
        "stdout": stdout,
        "stderr": None,
        "compile_output": None,
        "expected_output": expected_output,
        "time": "0.012",
        "memory": 3200,
        **extra,
    }


class ScriptedJudge:
    """
    Stands in for the Judge0 HTTP API.

    POST /submissions hands out sequential tokens; each GET answers with the
    next scripted poll body, repeating the last one once the script runs out.
    A string body is sent as-is instead of JSON.
    """

    def __init__(self, polls=None, submit_status: int = 201):
        self.polls = list(polls or [judge_response(3)])
        self.submit_status = submit_status
        self.requests = []
        self.submitted = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/about":
            return httpx.Response(200, json={"version": "1.13.1"})

        if request.method == "POST":
            if self.submit_status >= 300:
                return httpx.Response(self.submit_status, text="judge exploded")
            self.submitted.append(request)
            return httpx.Response(self.submit_status, json={"token": f"tok-{len(self.submitted)}"})

        body = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, json=body)

    @property
    def poll_count(self) -> int:
        return sum(1 for r in self.requests if r.method == "GET" and r.url.path.startswith("/submissions/"))


@pytest.fixture
def make_judge():
    def _make(polls=None, submit_status: int = 201, max_attempts: int = 3, auth_token: str = "secret"):
        script = ScriptedJudge(polls, submit_status)
        client = JudgeClient(
            base_url="http://judge.test",
            auth_token=auth_token,
            poll_interval=0,
            max_attempts=max_attempts,
            timeout=5,
            transport=httpx.MockTransport(script),
        )
        return client, script

    return _make


@pytest_asyncio.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client["codearena_test"]
    await create_indexes(database)
    return database


@pytest.fixture
def seed_user(db):
    async def _seed(user_id: str = "USR_1", role: str = "learner", **fields):
        user = {"user_id": user_id, "name": f"User {user_id}", "role": role, **fields}
        await db.users.insert_one(user)
        return user

    return _seed


@pytest.fixture
def seed_problem(db):
    async def _seed(problem_id: str = "PRB_1", difficulty: str = "Easy", views: int = 0, **fields):
        problem = {
            "problem_id": problem_id,
            "title": f"Problem {problem_id}",
            "difficulty": difficulty,
            "views": views,
            "sample_input": "1 2",
            "sample_output": "3",
            **fields,
        }
        await db.problems.insert_one(problem)
        return problem

    return _seed
