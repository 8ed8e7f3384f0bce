import json

import httpx
import pytest
import pytest_asyncio

from codearena.auth import create_token
from codearena.dependencies import get_db
from codearena.errors import ExecutionTimeout, InvalidSubmission, UnsupportedLanguage
from codearena.judge import get_judge_client
from codearena.main import app
from codearena.playground.service import execute_code

from conftest import judge_response


@pytest.mark.asyncio
async def test_run_returns_output_with_stdin(make_judge):
    judge, script = make_judge(polls=[judge_response(2), judge_response(3, stdout="hello ada\n", expected_output=None)])

    result = await execute_code(judge, "USR_1", "print('hello', input())", "python", "ada")

    assert result.output == "hello ada\n"
    assert result.verdict == "Accepted"
    assert result.status == "Accepted"
    assert result.is_error is False
    assert result.execution_time_ms == 12.0
    assert result.memory_kb == 3200

    payload = json.loads(script.submitted[0].content)
    assert payload["stdin"] == "ada"
    assert payload["expected_output"] == ""
    assert payload["language_id"] == 71


@pytest.mark.asyncio
@pytest.mark.parametrize("status_id, verdict", [
    (6, "Compilation Error"),
    (11, "Runtime Error"),
    (5, "Time Limit Exceeded"),
])
async def test_failed_runs_are_flagged(make_judge, status_id, verdict):
    failure = judge_response(status_id, stdout="", expected_output=None, compile_output="main.c:1: error", stderr="boom")
    judge, _ = make_judge(polls=[failure])

    result = await execute_code(judge, "USR_1", "int main(", "c")

    assert result.verdict == verdict
    assert result.is_error is True
    assert result.compile_output == "main.c:1: error"
    assert result.stderr == "boom"


@pytest.mark.asyncio
async def test_bad_input_rejected_before_dispatch(make_judge):
    judge, script = make_judge()

    with pytest.raises(UnsupportedLanguage):
        await execute_code(judge, "USR_1", "puts 1", "ruby")
    with pytest.raises(InvalidSubmission):
        await execute_code(judge, "USR_1", "  ", "python")
    with pytest.raises(InvalidSubmission):
        await execute_code(judge, "USR_1", "x" * 70000, "python")
    with pytest.raises(InvalidSubmission):
        await execute_code(judge, "USR_1", "print(input())", "python", "1" * 70000)

    assert script.requests == []


@pytest.mark.asyncio
async def test_run_that_never_finishes_times_out(make_judge):
    judge, script = make_judge(polls=[judge_response(1)], max_attempts=2)

    with pytest.raises(ExecutionTimeout):
        await execute_code(judge, "USR_1", "while True: pass", "python")

    assert script.poll_count == 2


# ==================== API ====================


@pytest_asyncio.fixture
async def client(db, make_judge, seed_user):
    judge, script = make_judge(polls=[judge_response(3, stdout="42\n", expected_output=None)])
    await seed_user("USR_1")

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_judge_client] = lambda: judge
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        yield http, script
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_execute_endpoint_records_nothing(client, db):
    http, script = client
    headers = {"Authorization": f"Bearer {create_token('USR_1')}"}

    response = await http.post("/playground/execute", json={"code": "print(42)", "language": "python"}, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["result"]["output"] == "42\n"
    assert body["result"]["is_error"] is False
    assert len(script.submitted) == 1

    assert await db.submissions.count_documents({}) == 0
    assert await db.audit_logs.count_documents({}) == 0
    user = await db.users.find_one({"user_id": "USR_1"})
    assert user.get("total_submissions_count", 0) == 0


@pytest.mark.asyncio
async def test_execute_endpoint_rejects_anonymous_and_bad_language(client):
    http, script = client

    anonymous = await http.post("/playground/execute", json={"code": "print(42)", "language": "python"})
    assert anonymous.status_code == 401

    ruby = await http.post(
        "/playground/execute",
        json={"code": "puts 42", "language": "ruby"},
        headers={"Authorization": f"Bearer {create_token('USR_1')}"},
    )
    assert ruby.status_code == 400
    assert ruby.json()["type"] == "UnsupportedLanguage"
    assert script.requests == []
