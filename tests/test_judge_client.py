import json

import httpx
import pytest

from codearena.errors import (
    ConfigurationError,
    ExecutionTimeout,
    InvalidSubmission,
    UnsupportedLanguage,
    UpstreamError,
)
from codearena.judge import JudgeClient, JudgeVerdict
from codearena.judge.models import JudgeResult

from conftest import judge_response


def test_validate_rejects_unknown_language_without_network(make_judge):
    judge, script = make_judge()

    with pytest.raises(UnsupportedLanguage):
        judge.validate("print(1)", "ruby")

    assert script.requests == []


def test_validate_rejects_blank_and_oversized_code(make_judge):
    judge, _ = make_judge()

    with pytest.raises(InvalidSubmission):
        judge.validate("   ", "python")
    with pytest.raises(InvalidSubmission):
        judge.validate("x" * 70000, "python")
    with pytest.raises(InvalidSubmission):
        judge.validate("print(1)", "python", "1" * 70000)

    assert judge.validate("print(1)", "Python") == 71


@pytest.mark.asyncio
async def test_submit_without_credentials_is_configuration_error(make_judge):
    judge, script = make_judge(auth_token="")

    with pytest.raises(ConfigurationError):
        await judge.submit("print(1)", "python", "1 2", "3")

    assert script.requests == []


@pytest.mark.asyncio
async def test_submit_sends_wire_contract(make_judge):
    judge, script = make_judge()

    token = await judge.submit("print(3)", "python", "1 2", "3")

    assert token == "tok-1"
    request = script.submitted[0]
    assert request.url.path == "/submissions"
    assert request.url.params["base64_encoded"] == "false"
    assert request.url.params["wait"] == "false"
    assert request.headers["X-Auth-Token"] == "secret"

    body = json.loads(request.content)
    assert body["language_id"] == 71
    assert body["source_code"] == "print(3)"
    assert body["stdin"] == "1 2"
    assert body["expected_output"] == "3"


@pytest.mark.asyncio
async def test_submit_upstream_failure(make_judge):
    judge, _ = make_judge(submit_status=500)

    with pytest.raises(UpstreamError):
        await judge.submit("print(1)", "python")


@pytest.mark.asyncio
async def test_await_result_returns_first_terminal_status(make_judge):
    judge, script = make_judge(polls=[judge_response(1), judge_response(2), judge_response(3), judge_response(4)])

    result = await judge.await_result("tok-1")

    assert result.verdict is JudgeVerdict.ACCEPTED
    assert result.is_accepted
    assert result.time_ms == 12.0
    assert result.memory_kb == 3200
    assert script.poll_count == 3


@pytest.mark.asyncio
async def test_await_result_times_out_after_max_attempts(make_judge):
    judge, script = make_judge(polls=[judge_response(2)], max_attempts=3)

    with pytest.raises(ExecutionTimeout):
        await judge.await_result("tok-1")

    assert script.poll_count == 3


@pytest.mark.asyncio
async def test_await_result_unknown_status_is_upstream_error(make_judge):
    judge, _ = make_judge(polls=[judge_response(99)])

    with pytest.raises(UpstreamError):
        await judge.await_result("tok-1")


def test_accepted_status_with_different_output_is_not_accepted():
    result = JudgeResult.from_response("tok", judge_response(3, stdout="4\n", expected_output="3"))

    assert result.verdict is JudgeVerdict.ACCEPTED
    assert not result.is_accepted


def test_runtime_error_flavours():
    for status_id in range(7, 13):
        assert JudgeResult.from_response("tok", judge_response(status_id)).verdict.is_runtime_error


@pytest.mark.asyncio
async def test_ping_reports_version(make_judge):
    judge, _ = make_judge()

    assert await judge.ping() == {"success": True, "version": "1.13.1"}


def test_available_languages_lists_language_table():
    names = {language["name"] for language in JudgeClient.available_languages()}
    assert {"python", "javascript", "c++", "go"} <= names


@pytest.mark.asyncio
async def test_non_json_submit_reply_is_upstream_error():
    judge = JudgeClient(
        base_url="http://judge.test",
        auth_token="secret",
        poll_interval=0,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>gateway</html>")),
    )

    with pytest.raises(UpstreamError):
        await judge.submit("print(1)", "python")


@pytest.mark.asyncio
async def test_malformed_poll_replies_are_upstream_errors(make_judge):
    html_judge, _ = make_judge(polls=["<html>gateway</html>"])
    with pytest.raises(UpstreamError):
        await html_judge.poll("tok-1")

    list_judge, _ = make_judge(polls=[[1, 2, 3]])
    with pytest.raises(UpstreamError):
        await list_judge.poll("tok-1")

    bad_time_judge, _ = make_judge(polls=[judge_response(3, time="fast")])
    with pytest.raises(UpstreamError):
        await bad_time_judge.poll("tok-1")
