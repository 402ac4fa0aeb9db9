"""Analyzer configuration. Env prefix: ANALYZER_. Keys: ANALYZER_OPENROUTER_API_KEY, ANALYZER_GEMINI_API_KEY."""
from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from convo_analyzer.types import AnalyzerProvider, ProviderConfig


class AnalyzerSettings(BaseSettings):
    """Built once at process start and passed explicitly; nothing reads os.environ at call time."""

    model_config = SettingsConfigDict(
        env_prefix="ANALYZER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: AnalyzerProvider = Field(default=AnalyzerProvider.OPENROUTER, description="Completion provider")

    openrouter_api_base: str = Field(default="https://openrouter.ai/api/v1", description="OpenRouter base URL")
    openrouter_api_key: str | None = Field(default=None, description="Bearer token (env: ANALYZER_OPENROUTER_API_KEY)")
    openrouter_model: str = Field(default="openai/gpt-4.1", description="OpenRouter model id")
    http_referer: str | None = Field(default=None, description="Optional HTTP-Referer header for OpenRouter")
    app_title: str | None = Field(default="Semantic Temporal CRM Analyzer", description="Optional X-Title header")

    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Google AI Studio base URL",
    )
    gemini_api_key: str | None = Field(default=None, description="API key (env: ANALYZER_GEMINI_API_KEY)")
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model id")

    max_retries: int = Field(default=3, ge=1, description="Total attempts per analysis")
    retry_backoff_base_s: float = Field(default=1.0, ge=0, description="Base delay for exponential backoff")
    request_timeout_s: float = Field(default=60.0, gt=0, description="Per-attempt HTTP timeout")

    validate_features: bool = Field(
        default=True,
        description="Reject results whose feature keys/categories do not match the request",
    )
    log_prompt_previews: bool = Field(default=False, description="Log redacted prompt previews")

    @model_validator(mode="after")
    def validate_provider(self) -> "AnalyzerSettings":
        if self.provider == AnalyzerProvider.OPENROUTER:
            if not self.openrouter_api_key:
                raise ValueError("provider=openrouter requires openrouter_api_key (set ANALYZER_OPENROUTER_API_KEY)")
            if not self.openrouter_model.strip():
                raise ValueError("provider=openrouter requires non-empty openrouter_model")
        if self.provider == AnalyzerProvider.GEMINI:
            if not self.gemini_api_key:
                raise ValueError("provider=gemini requires gemini_api_key (set ANALYZER_GEMINI_API_KEY)")
            if not self.gemini_model.strip():
                raise ValueError("provider=gemini requires non-empty gemini_model")
        return self

    def provider_config(self) -> ProviderConfig:
        """Resolve endpoint, key and model for the selected provider."""
        if self.provider == AnalyzerProvider.GEMINI:
            return ProviderConfig(
                provider=self.provider,
                endpoint=self.gemini_api_base.rstrip("/"),
                api_key=self.gemini_api_key or "",
                model=self.gemini_model,
            )
        headers: dict[str, str] = {}
        if self.http_referer:
            headers["HTTP-Referer"] = self.http_referer
        if self.app_title:
            headers["X-Title"] = self.app_title
        return ProviderConfig(
            provider=self.provider,
            endpoint=self.openrouter_api_base.rstrip("/"),
            api_key=self.openrouter_api_key or "",
            model=self.openrouter_model,
            extra_headers=headers,
        )
