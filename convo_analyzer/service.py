"""
ConversationAnalyzer: single public entrypoint. Validates the request, builds schema
and prompts, runs the executor, and checks the result against what was requested.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from convo_analyzer.errors import InvalidRequestError, ResponseInvalidError
from convo_analyzer.executor import RequestExecutor
from convo_analyzer.features import category_of, resolve_requested
from convo_analyzer.formatter import format_conversation
from convo_analyzer.ports import ProviderAdapterPort
from convo_analyzer.prompts import build_system_prompt, build_user_prompt
from convo_analyzer.providers import build_adapter
from convo_analyzer.schema_builder import build_dynamic_schema
from convo_analyzer.settings import AnalyzerSettings
from convo_analyzer.telemetry import log_prompt_preview
from convo_analyzer.types import AnalysisRequest, AnalysisResult


def coerce_request(request: AnalysisRequest | Mapping[str, Any]) -> AnalysisRequest:
    """Accept a model or a plain mapping (camelCase or snake_case). Raises InvalidRequestError."""
    if isinstance(request, AnalysisRequest):
        return request
    try:
        return AnalysisRequest.model_validate(request)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid analysis request: {e.error_count()} error(s)", details=str(e)) from e


def validate_result(result: AnalysisResult, requested_keys: Sequence[str], include_next_action: bool) -> None:
    """Reject features that were not requested or whose type disagrees with the registry."""
    allowed = set(requested_keys)
    for feature in result.features:
        if feature.key not in allowed:
            raise ResponseInvalidError(f"Model returned unrequested feature {feature.key!r}")
        expected = category_of(feature.key)
        if feature.type != expected:
            raise ResponseInvalidError(
                f"Feature {feature.key!r} returned as {feature.type.value}, expected {expected.value}"
            )
    if include_next_action and result.next_action is None:
        raise ResponseInvalidError("nextAction was requested but is missing")
    if not include_next_action and result.next_action is not None:
        raise ResponseInvalidError("nextAction was not requested but is present")


class ConversationAnalyzer:
    """Orchestrates formatter, schema builder, prompt assembler and executor. Stateless per call."""

    def __init__(
        self,
        settings: AnalyzerSettings,
        *,
        adapter: ProviderAdapterPort | None = None,
        executor: RequestExecutor | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._adapter = adapter or build_adapter(settings)
        self._executor = executor or RequestExecutor(
            self._adapter,
            max_retries=settings.max_retries,
            backoff_base_s=settings.retry_backoff_base_s,
            timeout_s=settings.request_timeout_s,
            client=client,
        )

    async def analyze(self, request: AnalysisRequest | Mapping[str, Any]) -> AnalysisResult:
        """
        Caller errors (unknown key, empty feature list, empty transcript) are raised
        before any network call. All-or-nothing: no partial result on failure.
        """
        req = coerce_request(request)
        keys = resolve_requested(req.requested_features)
        if not req.messages:
            raise InvalidRequestError("messages must not be empty")

        schema = build_dynamic_schema(keys, req.include_next_action)
        system_prompt = build_system_prompt(req.context, keys)
        user_prompt = build_user_prompt(format_conversation(req.messages))
        if self._settings.log_prompt_previews:
            log_prompt_preview(system_prompt, user_prompt)

        result = await self._executor.execute(system_prompt, user_prompt, schema)
        if self._settings.validate_features:
            validate_result(result, keys, req.include_next_action)
        return result


async def analyze_conversation(
    request: AnalysisRequest | Mapping[str, Any],
    *,
    settings: AnalyzerSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> AnalysisResult:
    """Public entry point. settings default to AnalyzerSettings() (env / .env)."""
    analyzer = ConversationAnalyzer(settings or AnalyzerSettings(), client=client)
    return await analyzer.analyze(request)
