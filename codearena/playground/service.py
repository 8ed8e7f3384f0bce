"""
Playground execution

Runs free-form code with optional stdin against the judge. There is no
problem, no expected output and nothing is written to the database.
"""

from codearena.judge import JudgeClient, JudgeResult
from codearena.playground.models import PlaygroundResult
from codearena.submissions.models import Verdict, verdict_from_judge
from codearena.utils import setup_logging

logger = setup_logging(__name__)

ERROR_VERDICTS = {Verdict.COMPILATION_ERROR, Verdict.RUNTIME_ERROR, Verdict.TIME_LIMIT_EXCEEDED}


def interpret_run(result: JudgeResult) -> PlaygroundResult:
    verdict = verdict_from_judge(result.verdict)
    return PlaygroundResult(
        output=result.stdout,
        stderr=result.stderr,
        compile_output=result.compile_output,
        execution_time_ms=result.time_ms,
        memory_kb=result.memory_kb,
        verdict=verdict.value,
        status=result.status_text,
        is_error=verdict in ERROR_VERDICTS,
    )


async def execute_code(judge: JudgeClient, user_id: str, code: str, language: str, stdin: str = "") -> PlaygroundResult:
    judge.validate(code, language, stdin)

    token = await judge.submit(code, language, stdin or "", "")
    result = interpret_run(await judge.await_result(token))

    logger.info("Playground run by %s (%s): %s", user_id, language, result.verdict)
    return result
