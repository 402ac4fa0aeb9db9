"""Provider adapters: OpenRouter (canonical) and Gemini, selected by settings."""
from __future__ import annotations

from convo_analyzer.ports import ProviderAdapterPort
from convo_analyzer.providers.gemini import GeminiAdapter, to_gemini_schema
from convo_analyzer.providers.openrouter import OpenRouterAdapter
from convo_analyzer.settings import AnalyzerSettings
from convo_analyzer.types import AnalyzerProvider


def build_adapter(settings: AnalyzerSettings) -> ProviderAdapterPort:
    """Return the adapter for settings.provider, bound to its resolved config."""
    config = settings.provider_config()
    if config.provider == AnalyzerProvider.GEMINI:
        return GeminiAdapter(config)
    if config.provider == AnalyzerProvider.OPENROUTER:
        return OpenRouterAdapter(config)
    raise ValueError(f"Unknown provider: {config.provider}")


__all__ = ["build_adapter", "OpenRouterAdapter", "GeminiAdapter", "to_gemini_schema"]
