"""
Judge0 client

Dispatches code to the external judge and polls for a terminal verdict.
The poll loop only sleeps between requests; it never touches the database,
so callers must not hold any lock or transaction while awaiting a result.
"""

import asyncio
from typing import Optional

import httpx

from codearena.config import (
    JUDGE0_API_URL,
    JUDGE0_AUTH_TOKEN,
    JUDGE_EXECUTION_LIMITS,
    JUDGE_MAX_POLL_ATTEMPTS,
    JUDGE_POLL_INTERVAL_SECONDS,
    JUDGE_REQUEST_TIMEOUT_SECONDS,
    MAX_CODE_LENGTH,
    MAX_INPUT_LENGTH,
)
from codearena.errors import (
    ConfigurationError,
    ExecutionTimeout,
    InvalidSubmission,
    UnsupportedLanguage,
    UpstreamError,
)
from codearena.judge.models import LANGUAGE_IDS, JudgeResult, JudgeVerdict
from codearena.utils import setup_logging

logger = setup_logging(__name__)


def _json_body(response: httpx.Response) -> dict:
    """Decoded JSON object from a judge reply; anything else is an upstream failure"""
    try:
        data = response.json()
    except ValueError as e:
        raise UpstreamError(f"Invalid response from judge: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise UpstreamError("Invalid response from judge: expected a JSON object")
    return data


class JudgeClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (JUDGE0_API_URL if base_url is None else base_url).rstrip("/")
        self.auth_token = JUDGE0_AUTH_TOKEN if auth_token is None else auth_token
        self.poll_interval = JUDGE_POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.max_attempts = JUDGE_MAX_POLL_ATTEMPTS if max_attempts is None else max_attempts
        self.timeout = JUDGE_REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
        self._transport = transport

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Auth-Token": self.auth_token,
        }

    # ==================== VALIDATION ====================

    def validate(self, code: str, language: str, stdin: str = "") -> int:
        """Reject a submission before any network call. Returns the judge language id."""
        if not code or not code.strip():
            raise InvalidSubmission("Code cannot be empty")

        language_id = LANGUAGE_IDS.get((language or "").lower())
        if language_id is None:
            raise UnsupportedLanguage(language)

        if len(code) > MAX_CODE_LENGTH:
            raise InvalidSubmission("Code is too long (max 64KB)")
        if stdin and len(stdin) > MAX_INPUT_LENGTH:
            raise InvalidSubmission("Input is too long (max 64KB)")

        return language_id

    def _require_credentials(self):
        if not self.base_url or not self.auth_token:
            raise ConfigurationError("Judge service credentials are not configured")

    # ==================== DISPATCH ====================

    async def submit(self, code: str, language: str, stdin: str = "", expected_output: str = "") -> str:
        """Send code to the judge and return its opaque token"""
        language_id = self.validate(code, language, stdin)
        self._require_credentials()

        payload = {
            "language_id": language_id,
            "source_code": code,
            "stdin": stdin or "",
            "expected_output": expected_output or "",
            **JUDGE_EXECUTION_LIMITS,
        }

        logger.info(
            "Submitting to judge: language=%s (%d), code=%d chars, stdin=%d chars",
            language, language_id, len(code), len(stdin or ""),
        )

        try:
            async with self._http() as client:
                response = await client.post(
                    "/submissions",
                    params={"base64_encoded": "false", "wait": "false"},
                    json=payload,
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Cannot reach judge service: {e}") from e

        if response.status_code == 401:
            raise UpstreamError("Judge authentication failed")
        if response.status_code == 429:
            raise UpstreamError("Too many requests to judge service, try again shortly")
        if not response.is_success:
            raise UpstreamError(f"Judge rejected submission: HTTP {response.status_code} {response.text[:200]}")

        token = _json_body(response).get("token")
        if not token:
            raise UpstreamError("Invalid response from judge - no token returned")

        return token

    # ==================== POLLING ====================

    async def poll(self, token: str) -> JudgeResult:
        """Fetch the current state of a judge submission"""
        if not token:
            raise UpstreamError("Token is required to fetch a result")

        try:
            async with self._http() as client:
                response = await client.get(
                    f"/submissions/{token}",
                    params={"base64_encoded": "false", "fields": "*"},
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Cannot reach judge service: {e}") from e

        if response.status_code == 404:
            raise UpstreamError(f"Judge submission {token} not found")
        if not response.is_success:
            raise UpstreamError(f"Judge status check failed: HTTP {response.status_code}")

        data = _json_body(response)
        try:
            return JudgeResult.from_response(token, data)
        except (AttributeError, TypeError, ValueError) as e:
            raise UpstreamError(f"Invalid response from judge: {e}") from e

    async def await_result(
        self,
        token: str,
        max_attempts: Optional[int] = None,
        interval: Optional[float] = None,
    ) -> JudgeResult:
        """
        Poll until the judge reports a terminal status.

        Raises ExecutionTimeout when the attempts run out while the judge is
        still queueing/processing, and UpstreamError when it answers with a
        status outside the known table.
        """
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        interval = self.poll_interval if interval is None else interval

        for attempt in range(max_attempts):
            result = await self.poll(token)
            logger.debug("Poll %d/%d for %s: %s", attempt + 1, max_attempts, token, result.status_text)

            if not result.is_processing:
                if result.verdict is JudgeVerdict.UNKNOWN:
                    raise UpstreamError(f"Judge returned unknown status {result.status_id} ({result.status_text})")
                logger.info(
                    "Judge verdict for %s: %s (%.2fms, %dKB)",
                    token, result.verdict.value, result.time_ms, result.memory_kb,
                )
                return result

            if attempt < max_attempts - 1:
                await asyncio.sleep(interval)

        raise ExecutionTimeout("Execution timeout. The code is taking too long to execute.")

    # ==================== HEALTH ====================

    async def ping(self) -> dict:
        try:
            async with self._http() as client:
                response = await client.get("/about", headers=self._headers(), timeout=5.0)
            if not response.is_success:
                return {"success": False, "error": f"HTTP {response.status_code}"}
            return {"success": True, "version": _json_body(response).get("version", "unknown")}
        except (httpx.HTTPError, UpstreamError) as e:
            logger.warning("Judge ping failed: %s", e)
            return {"success": False, "error": str(e)}

    @staticmethod
    def available_languages() -> list[dict]:
        return [
            {"name": name, "id": language_id, "display_name": name.capitalize()}
            for name, language_id in LANGUAGE_IDS.items()
        ]


_judge_client: Optional[JudgeClient] = None


def get_judge_client() -> JudgeClient:
    """Judge dependency"""
    global _judge_client
    if _judge_client is None:
        _judge_client = JudgeClient()
    return _judge_client
