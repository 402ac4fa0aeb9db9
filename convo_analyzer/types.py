"""Typed request/result models for the analyzer (Pydantic v2). All models are immutable."""
from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class AnalyzerProvider(str, Enum):
    """Supported completion providers."""

    OPENROUTER = "openrouter"
    GEMINI = "gemini"


class FeatureCategory(str, Enum):
    """Category of a feature key: content-derived or time-derived."""

    SEMANTIC = "semantic"
    TEMPORAL = "temporal"


class Message(BaseModel):
    """One chat message. timestamp is epoch milliseconds."""

    model_config = ConfigDict(frozen=True)

    text: str
    timestamp: int
    role: Literal["client", "vendor"]


class AnalysisContext(BaseModel):
    """Request context consumed by the prompt assembler."""

    model_config = _CAMEL

    goal: str | None = None
    product_or_service: str | None = None
    include_next_action: bool = False


class AnalysisRequest(BaseModel):
    """Input of analyze_conversation. Accepts snake_case or camelCase keys."""

    model_config = _CAMEL

    messages: list[Message]
    requested_features: Literal["all"] | list[str] = Field(
        validation_alias=AliasChoices("requested_features", "requestedFeatures", "requested"),
    )
    goal: str | None = None
    product_or_service: str | None = None
    include_next_action: bool = False

    @field_validator("requested_features")
    @classmethod
    def _collapse_all(cls, v: Literal["all"] | list[str]) -> Literal["all"] | list[str]:
        if isinstance(v, list) and "all" in v:
            return "all"
        return v

    @property
    def context(self) -> AnalysisContext:
        return AnalysisContext(
            goal=self.goal,
            product_or_service=self.product_or_service,
            include_next_action=self.include_next_action,
        )


# Decimal comma is accepted; grouping separators ("1,000", "1.234,5") are ambiguous
_DECIMAL_COMMA = re.compile(r"^[+-]?\d+,\d+$")
_GROUPED = re.compile(r"^[+-]?\d{1,3},\d{3}$")


def _finite_number(raw: Any) -> int | float:
    """Return raw as a finite int/float or raise ValueError."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"temporal feature value must be a number, got {raw!r}")
    try:
        finite = math.isfinite(float(raw))
    except OverflowError:
        finite = False
    if not finite:
        raise ValueError("temporal feature value must be a finite number")
    return raw


def _number_from_text(text: str) -> float:
    cleaned = text.strip()
    if "," in cleaned:
        if not _DECIMAL_COMMA.match(cleaned) or _GROUPED.match(cleaned):
            raise ValueError(f"temporal feature value must be a number, got {text[:32]!r}")
        cleaned = cleaned.replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        raise ValueError(f"temporal feature value must be a number, got {text[:32]!r}") from None


class FeatureValue(BaseModel):
    """Tagged value: temporal features carry numbers, semantic features carry strings."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["number", "string"]
    payload: int | float | str

    @model_validator(mode="after")
    def _check_payload(self) -> "FeatureValue":
        if self.kind == "number":
            _finite_number(self.payload)
        elif not isinstance(self.payload, str):
            raise ValueError(f"string value must be text, got {self.payload!r}")
        return self

    @classmethod
    def for_category(cls, category: FeatureCategory, raw: Any) -> "FeatureValue":
        """Validate raw model output against the kind the category expects."""
        if category == FeatureCategory.TEMPORAL:
            if isinstance(raw, str):
                # Best-effort: some providers still return numbers as text
                raw = _number_from_text(raw)
            return cls(kind="number", payload=_finite_number(raw))
        if not isinstance(raw, str):
            raise ValueError(f"semantic feature value must be a string, got {raw!r}")
        return cls(kind="string", payload=raw)


class Feature(BaseModel):
    """One extracted feature as returned by the model."""

    model_config = ConfigDict(frozen=True)

    name: str
    key: str
    value: FeatureValue
    type: FeatureCategory
    explanation: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _tag_value(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw = data.get("value")
        if isinstance(raw, FeatureValue) or (isinstance(raw, dict) and "kind" in raw):
            return data
        try:
            category = FeatureCategory(data.get("type"))
        except ValueError:
            # Unknown category: field validation reports it
            return data
        return {**data, "value": FeatureValue.for_category(category, raw)}

    @model_validator(mode="after")
    def _check_kind(self) -> "Feature":
        expected = "number" if self.type == FeatureCategory.TEMPORAL else "string"
        if self.value.kind != expected:
            raise ValueError(f"{self.type.value} feature {self.key!r} requires a {expected} value")
        return self

    @field_serializer("value")
    def _plain_value(self, value: FeatureValue) -> int | float | str:
        return value.payload


class NextAction(BaseModel):
    """Recommended follow-up for the salesperson."""

    model_config = ConfigDict(frozen=True)

    action: str
    explanation: str


class AnalysisResult(BaseModel):
    """Parsed model output. nextAction present only when it was requested."""

    model_config = _CAMEL

    features: tuple[Feature, ...]
    next_action: NextAction | None = None


class ProviderConfig(BaseModel):
    """Resolved endpoint, credentials and model for one provider."""

    model_config = ConfigDict(frozen=True)

    provider: AnalyzerProvider
    endpoint: str
    api_key: str
    model: str
    extra_headers: dict[str, str] = Field(default_factory=dict)


class ProviderCall(BaseModel):
    """One HTTP POST ready to be sent by the executor."""

    model_config = ConfigDict(frozen=True)

    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, str] = Field(default_factory=dict)
    json_body: dict[str, Any]
