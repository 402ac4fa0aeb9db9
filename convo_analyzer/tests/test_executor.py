"""Retry loop, backoff and failure mapping. httpx.MockTransport, no network, no real sleeps."""
import asyncio
import json

import httpx
import pytest

from convo_analyzer.errors import (
    AnalysisFailedError,
    EmptyResponseError,
    MalformedResponseError,
    ProviderHTTPError,
    ProviderTimeout,
    ProviderUnavailable,
)
from convo_analyzer.executor import RequestExecutor, backoff_delay, parse_result, strip_json_block
from convo_analyzer.providers import OpenRouterAdapter
from convo_analyzer.types import AnalyzerProvider, ProviderConfig

RESULT_TEXT = '{"features":[{"name":"X","key":"clientIntent","value":"buy","type":"semantic"}]}'
SCHEMA = {"type": "object"}


def _adapter() -> OpenRouterAdapter:
    return OpenRouterAdapter(
        ProviderConfig(
            provider=AnalyzerProvider.OPENROUTER,
            endpoint="https://openrouter.test/api/v1",
            api_key="sk-test",
            model="openai/gpt-4.1",
        )
    )


def _ok(text: str = RESULT_TEXT) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": text}}]})


class _Recorder:
    """Scripted transport: pops one response (or exception) per call."""

    def __init__(self, script: list) -> None:
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _executor(recorder: _Recorder, delays: list[float]) -> RequestExecutor:
    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return RequestExecutor(_adapter(), client=client, sleep=fake_sleep)


@pytest.mark.asyncio
async def test_first_attempt_success_no_sleep() -> None:
    recorder, delays = _Recorder([_ok()]), []
    result = await _executor(recorder, delays).execute("sys", "usr", SCHEMA)
    assert result.features[0].key == "clientIntent"
    assert len(recorder.requests) == 1
    assert delays == []


@pytest.mark.asyncio
async def test_request_carries_auth_and_payload() -> None:
    recorder, delays = _Recorder([_ok()]), []
    await _executor(recorder, delays).execute("sys", "usr", SCHEMA)
    sent = recorder.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == "https://openrouter.test/api/v1/chat/completions"
    assert sent.headers["Authorization"] == "Bearer sk-test"
    assert sent.headers["Content-Type"] == "application/json"
    body = json.loads(sent.content)
    assert body["response_format"]["json_schema"]["schema"] == SCHEMA


@pytest.mark.asyncio
async def test_succeeds_on_third_attempt_with_backoff() -> None:
    """Faults on attempts 1-2, success on 3: exactly 3 calls, delays 1s then 2s."""
    recorder = _Recorder([httpx.Response(503, text="overloaded"), _ok("not json"), _ok()])
    delays: list[float] = []
    result = await _executor(recorder, delays).execute("sys", "usr", SCHEMA)
    assert result.features[0].value.payload == "buy"
    assert len(recorder.requests) == 3
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhaustion_after_three_calls_no_trailing_delay() -> None:
    recorder = _Recorder([httpx.Response(500, text="boom") for _ in range(3)])
    delays: list[float] = []
    with pytest.raises(AnalysisFailedError) as exc:
        await _executor(recorder, delays).execute("sys", "usr", SCHEMA)
    assert len(recorder.requests) == 3
    assert delays == [1.0, 2.0]
    err = exc.value
    assert err.code == "RETRIES_EXHAUSTED"
    assert isinstance(err.last_error, ProviderHTTPError)
    assert err.last_error.status_code == 500
    assert "boom" in str(err)
    assert err.__cause__ is err.last_error


@pytest.mark.asyncio
async def test_missing_content_is_retryable() -> None:
    recorder = _Recorder([httpx.Response(200, json={"choices": []}), _ok()])
    delays: list[float] = []
    await _executor(recorder, delays).execute("sys", "usr", SCHEMA)
    assert len(recorder.requests) == 2
    assert delays == [1.0]


@pytest.mark.asyncio
async def test_transport_failures_are_mapped_and_retried() -> None:
    recorder = _Recorder(
        [
            httpx.ReadTimeout("slow"),
            httpx.ConnectError("refused"),
            httpx.Response(200, json={"unexpected": True}),
        ]
    )
    delays: list[float] = []
    with pytest.raises(AnalysisFailedError) as exc:
        await _executor(recorder, delays).execute("sys", "usr", SCHEMA)
    assert isinstance(exc.value.last_error, EmptyResponseError)
    assert len(recorder.requests) == 3


@pytest.mark.asyncio
async def test_timeout_error_type() -> None:
    recorder = _Recorder([httpx.ReadTimeout("slow") for _ in range(3)])
    with pytest.raises(AnalysisFailedError) as exc:
        await _executor(recorder, []).execute("sys", "usr", SCHEMA)
    assert isinstance(exc.value.last_error, ProviderTimeout)


@pytest.mark.asyncio
async def test_connect_error_type() -> None:
    recorder = _Recorder([httpx.ConnectError("refused") for _ in range(3)])
    with pytest.raises(AnalysisFailedError) as exc:
        await _executor(recorder, []).execute("sys", "usr", SCHEMA)
    assert isinstance(exc.value.last_error, ProviderUnavailable)


@pytest.mark.asyncio
async def test_error_body_is_redacted() -> None:
    recorder = _Recorder(
        [httpx.Response(401, text="bad token Bearer sk-abcdefghijklmnopqrstuvwxyz") for _ in range(3)]
    )
    with pytest.raises(AnalysisFailedError) as exc:
        await _executor(recorder, []).execute("sys", "usr", SCHEMA)
    assert "abcdefghijklmnop" not in str(exc.value)


@pytest.mark.asyncio
async def test_cancellation_during_backoff_propagates() -> None:
    recorder = _Recorder([httpx.Response(500, text="x") for _ in range(3)])
    calls: list[float] = []

    async def cancelling_sleep(seconds: float) -> None:
        calls.append(seconds)
        raise asyncio.CancelledError()

    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    executor = RequestExecutor(_adapter(), client=client, sleep=cancelling_sleep)
    with pytest.raises(asyncio.CancelledError):
        await executor.execute("sys", "usr", SCHEMA)
    assert len(recorder.requests) == 1
    assert calls == [1.0]


def test_backoff_delay() -> None:
    assert [backoff_delay(i) for i in range(3)] == [1.0, 2.0, 4.0]
    assert backoff_delay(2, 0.8) == pytest.approx(3.2)


def test_parse_result_strips_code_fence() -> None:
    assert strip_json_block("```json\n{\"a\": 1}\n```") == '{"a": 1}'
    result = parse_result(f"```json\n{RESULT_TEXT}\n```")
    assert result.features[0].name == "X"


def test_parse_result_rejects_bad_shape() -> None:
    with pytest.raises(MalformedResponseError) as exc:
        parse_result('{"features": [{"name": "X"}]}')
    assert exc.value.retryable is True
    with pytest.raises(MalformedResponseError):
        parse_result("{not json")


@pytest.mark.asyncio
async def test_decoding_and_redirect_errors_are_retried() -> None:
    recorder = _Recorder(
        [
            httpx.DecodingError("bad gzip"),
            httpx.TooManyRedirects("loop"),
            httpx.DecodingError("bad gzip"),
        ]
    )
    delays: list[float] = []
    with pytest.raises(AnalysisFailedError) as exc:
        await _executor(recorder, delays).execute("sys", "usr", SCHEMA)
    assert isinstance(exc.value.last_error, ProviderUnavailable)
    assert exc.value.last_error.details == "DecodingError"
    assert len(recorder.requests) == 3
    assert delays == [1.0, 2.0]


def test_parse_result_rejects_oversized_numbers() -> None:
    too_many_digits = '{"features":[{"name":"D","key":"conversationDuration","value":%s,"type":"temporal"}]}' % (
        "1" * 5000
    )
    with pytest.raises(MalformedResponseError):
        parse_result(too_many_digits)
    overflow = '{"features":[{"name":"D","key":"conversationDuration","value":1%s,"type":"temporal"}]}' % (
        "0" * 400
    )
    with pytest.raises(MalformedResponseError):
        parse_result(overflow)


def test_parse_result_rejects_deep_nesting() -> None:
    with pytest.raises(MalformedResponseError):
        parse_result("[" * 100000 + "]" * 100000)
