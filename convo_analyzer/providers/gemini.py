"""Gemini (Google AI Studio) provider: generateContent with responseSchema. API key as query parameter."""
from __future__ import annotations

from typing import Any

from convo_analyzer.types import AnalyzerProvider, ProviderCall, ProviderConfig

# JSON Schema keywords Gemini's OpenAPI subset does not accept
_DROPPED_KEYS = frozenset({"additionalProperties", "$schema", "title"})


def to_gemini_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a JSON schema to Gemini's OpenAPI subset: upper-case types,
    ["x", "null"] -> nullable, no additionalProperties, explicit propertyOrdering.
    """
    out: dict[str, Any] = {}
    for key, value in schema.items():
        if key in _DROPPED_KEYS:
            continue
        if key == "type":
            types = value if isinstance(value, list) else [value]
            non_null = [t for t in types if t != "null"]
            out["type"] = (non_null[0] if non_null else "string").upper()
            if len(non_null) != len(types):
                out["nullable"] = True
        elif key == "properties":
            out["properties"] = {name: to_gemini_schema(sub) for name, sub in value.items()}
            out["propertyOrdering"] = list(value)
        elif key == "items":
            out["items"] = to_gemini_schema(value)
        elif key == "anyOf":
            out["anyOf"] = [to_gemini_schema(sub) for sub in value]
        else:
            out[key] = value
    return out


class GeminiAdapter:
    """Alternate adapter behind the same port as OpenRouterAdapter."""

    provider = AnalyzerProvider.GEMINI

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    def build_request(self, system_prompt: str, user_prompt: str, schema: dict[str, Any]) -> ProviderCall:
        body: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": to_gemini_schema(schema),
            },
        }
        return ProviderCall(
            url=f"{self.config.endpoint}/models/{self.config.model}:generateContent",
            headers={"Content-Type": "application/json", **self.config.extra_headers},
            params={"key": self.config.api_key},
            json_body=body,
        )

    def extract_text(self, envelope: Any) -> str | None:
        """candidates[0].content.parts[0].text"""
        if not isinstance(envelope, dict):
            return None
        candidates = envelope.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return None
        content = candidates[0].get("content")
        if not isinstance(content, dict):
            return None
        parts = content.get("parts") or []
        if not parts or not isinstance(parts[0], dict):
            return None
        text = parts[0].get("text")
        if isinstance(text, str) and text.strip():
            return text
        return None
