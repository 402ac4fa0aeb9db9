"""Port interfaces. The executor depends on these, not on concrete providers."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from convo_analyzer.types import AnalyzerProvider, ProviderCall, ProviderConfig

SleepFn = Callable[[float], Awaitable[None]]


@runtime_checkable
class ProviderAdapterPort(Protocol):
    """Maps (system, user, schema) to one provider-specific POST and reads the answer back."""

    provider: AnalyzerProvider
    config: ProviderConfig

    def build_request(self, system_prompt: str, user_prompt: str, schema: dict[str, Any]) -> ProviderCall:
        """Serialize the request for this provider. Pure."""
        ...

    def extract_text(self, envelope: Any) -> str | None:
        """Return the model's raw text from the response envelope, or None if absent."""
        ...
