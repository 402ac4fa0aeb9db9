"""
Request executor: one POST per attempt, bounded retries with exponential backoff,
envelope extraction and result parsing.
Failure mapping (all retryable):
  - non-2xx status → ProviderHTTPError (status + redacted body)
  - httpx.TimeoutException → ProviderTimeout
  - any other httpx.RequestError (connect, decoding, redirects) → ProviderUnavailable
  - envelope without model content → EmptyResponseError
  - invalid JSON / result shape mismatch → MalformedResponseError
After max_retries failures → AnalysisFailedError wrapping the last one.
"""
from __future__ import annotations

import asyncio
import json
import re
import time
from typing import Any

import httpx
from pydantic import ValidationError

from convo_analyzer.errors import (
    AnalysisFailedError,
    AnalyzerError,
    EmptyResponseError,
    MalformedResponseError,
    ProviderHTTPError,
    ProviderTimeout,
    ProviderUnavailable,
)
from convo_analyzer.ports import ProviderAdapterPort, SleepFn
from convo_analyzer.telemetry import log_analysis_attempt, redact_preview, stable_hash
from convo_analyzer.types import AnalysisResult, ProviderCall

MAX_RETRIES = 3
BACKOFF_BASE_S = 1.0

_ERROR_BODY_MAX_CHARS = 500


def strip_json_block(raw: str) -> str:
    """Remove a surrounding ```json fence if the model added one."""
    raw = raw.strip()
    if raw.startswith("```"):
        raw = re.sub(r"^```(?:json)?\s*", "", raw)
    if raw.endswith("```"):
        raw = raw.rsplit("```", 1)[0]
    return raw.strip()


def parse_result(text: str) -> AnalysisResult:
    """Parse the model's raw text into AnalysisResult. Raises MalformedResponseError."""
    cleaned = strip_json_block(text)
    try:
        data = json.loads(cleaned)
    except (ValueError, RecursionError) as e:
        raise MalformedResponseError(f"Model output is not valid JSON: {e}") from e
    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(
            f"Model output does not match the result shape ({e.error_count()} error(s))",
            details=redact_preview(str(e), _ERROR_BODY_MAX_CHARS),
        ) from e


def backoff_delay(attempt: int, base_s: float = BACKOFF_BASE_S) -> float:
    """Delay before attempt+1, for a zero-based attempt index."""
    return base_s * (2**attempt)


class RequestExecutor:
    """Sequential retry loop around a provider adapter. Caller may inject the httpx client and sleep."""

    def __init__(
        self,
        adapter: ProviderAdapterPort,
        *,
        max_retries: int = MAX_RETRIES,
        backoff_base_s: float = BACKOFF_BASE_S,
        timeout_s: float | None = 60.0,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self._adapter = adapter
        self._max_retries = max_retries
        self._backoff_base_s = backoff_base_s
        self._timeout_s = timeout_s
        self._client = client
        self._sleep = sleep

    async def execute(self, system_prompt: str, user_prompt: str, schema: dict[str, Any]) -> AnalysisResult:
        """Run up to max_retries attempts. Returns on the first success; never sleeps after the last failure."""
        call = self._adapter.build_request(system_prompt, user_prompt, schema)
        fingerprint = stable_hash(
            "\n".join([system_prompt, user_prompt, json.dumps(schema, sort_keys=True)])
        )
        provider = self._adapter.provider
        model = self._adapter.config.model

        last_error: AnalyzerError | None = None
        for attempt in range(self._max_retries):
            t0 = time.perf_counter()
            try:
                result = await self._attempt(call)
            except AnalyzerError as e:
                last_error = e
                is_last = attempt == self._max_retries - 1
                delay = None if is_last or not e.retryable else backoff_delay(attempt, self._backoff_base_s)
                log_analysis_attempt(
                    provider=provider.value,
                    model=model,
                    attempt=attempt + 1,
                    max_attempts=self._max_retries,
                    latency_ms=int((time.perf_counter() - t0) * 1000),
                    status="FAILED",
                    prompt_sha256=fingerprint,
                    error_code=e.code,
                    backoff_s=delay,
                )
                if not e.retryable:
                    raise
                if delay is not None:
                    await self._sleep(delay)
                continue
            log_analysis_attempt(
                provider=provider.value,
                model=model,
                attempt=attempt + 1,
                max_attempts=self._max_retries,
                latency_ms=int((time.perf_counter() - t0) * 1000),
                status="SUCCEEDED",
                prompt_sha256=fingerprint,
            )
            return result
        raise AnalysisFailedError(last_error, self._max_retries, provider=provider) from last_error

    async def _attempt(self, call: ProviderCall) -> AnalysisResult:
        if self._client is not None:
            resp = await self._post(self._client, call)
        else:
            async with httpx.AsyncClient(timeout=self._timeout_s) as client:
                resp = await self._post(client, call)

        provider = self._adapter.provider
        if not resp.is_success:
            raise ProviderHTTPError(
                resp.status_code,
                redact_preview(resp.text, _ERROR_BODY_MAX_CHARS),
                provider=provider,
            )
        try:
            envelope = resp.json()
        except ValueError as e:
            raise MalformedResponseError("Provider envelope is not valid JSON", provider=provider) from e

        text = self._adapter.extract_text(envelope)
        if text is None:
            raise EmptyResponseError(provider=provider)
        return parse_result(text)

    async def _post(self, client: httpx.AsyncClient, call: ProviderCall) -> httpx.Response:
        provider = self._adapter.provider
        try:
            return await client.post(
                call.url,
                headers=call.headers,
                params=call.params or None,
                json=call.json_body,
                timeout=self._timeout_s,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeout(details=type(e).__name__, provider=provider) from e
        except httpx.RequestError as e:
            raise ProviderUnavailable(
                redact_preview(str(e)) or "Provider unavailable",
                details=type(e).__name__,
                provider=provider,
            ) from e
