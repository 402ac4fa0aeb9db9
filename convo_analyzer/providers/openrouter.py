"""OpenRouter provider (OpenAI chat-completions contract). Canonical adapter."""
from __future__ import annotations

from typing import Any

from convo_analyzer.schema_builder import SCHEMA_NAME
from convo_analyzer.types import AnalyzerProvider, ProviderCall, ProviderConfig


class OpenRouterAdapter:
    """Bearer auth; schema sent as response_format json_schema (strict)."""

    provider = AnalyzerProvider.OPENROUTER

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    def build_request(self, system_prompt: str, user_prompt: str, schema: dict[str, Any]) -> ProviderCall:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            **self.config.extra_headers,
        }
        body: dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": SCHEMA_NAME, "strict": True, "schema": schema},
            },
        }
        return ProviderCall(url=f"{self.config.endpoint}/chat/completions", headers=headers, json_body=body)

    def extract_text(self, envelope: Any) -> str | None:
        """choices[0].message.content"""
        if not isinstance(envelope, dict):
            return None
        choices = envelope.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str) and content.strip():
            return content
        return None
