"""Error taxonomy for the analyzer. Stable codes; retryable drives the executor loop."""
from __future__ import annotations

from convo_analyzer.types import AnalyzerProvider


class AnalyzerError(Exception):
    """Base for all analyzer errors. details must not leak secrets."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "UNKNOWN",
        retryable: bool = False,
        provider: AnalyzerProvider | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retryable = retryable
        self.provider = provider
        self.details = details or ""


class AnalysisRequestError(AnalyzerError):
    """Caller contract violation. Raised before any network call."""

    def __init__(self, message: str = "Invalid analysis request", **kwargs: object) -> None:
        kwargs.setdefault("code", "INVALID_REQUEST")
        super().__init__(message, retryable=False, **kwargs)


class UnknownFeatureError(AnalysisRequestError):
    """Feature key not present in the registry."""

    def __init__(self, key: str, **kwargs: object) -> None:
        super().__init__(f"Unknown feature key: {key!r}", code="UNKNOWN_FEATURE", **kwargs)
        self.key = key


class InvalidRequestError(AnalysisRequestError):
    """Empty feature set, empty transcript, or malformed request payload."""


class ProviderHTTPError(AnalyzerError):
    """Completion endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "", **kwargs: object) -> None:
        super().__init__(
            f"Provider error {status_code}: {body}",
            code="HTTP_ERROR",
            retryable=True,
            **kwargs,
        )
        self.status_code = status_code


class ProviderTimeout(AnalyzerError):
    """Request timed out."""

    def __init__(self, message: str = "Provider request timed out", **kwargs: object) -> None:
        super().__init__(message, code="TIMEOUT", retryable=True, **kwargs)


class ProviderUnavailable(AnalyzerError):
    """Connection or transport failure."""

    def __init__(self, message: str = "Provider unavailable", **kwargs: object) -> None:
        super().__init__(message, code="UNAVAILABLE", retryable=True, **kwargs)


class EmptyResponseError(AnalyzerError):
    """Envelope parsed but the model content field is missing."""

    def __init__(self, message: str = "Unexpected response: no content", **kwargs: object) -> None:
        super().__init__(message, code="EMPTY_RESPONSE", retryable=True, **kwargs)


class MalformedResponseError(AnalyzerError):
    """Envelope or model text is not valid JSON / does not parse into a result."""

    def __init__(self, message: str = "Malformed response", **kwargs: object) -> None:
        super().__init__(message, code="MALFORMED_RESPONSE", retryable=True, **kwargs)


class ResponseInvalidError(AnalyzerError):
    """Parsed result does not match what was requested (keys or categories)."""

    def __init__(self, message: str = "Response invalid", **kwargs: object) -> None:
        super().__init__(message, code="RESPONSE_INVALID", retryable=False, **kwargs)


class AnalysisFailedError(AnalyzerError):
    """All attempts failed. Wraps the last captured error."""

    def __init__(self, last_error: AnalyzerError | None, attempts: int, **kwargs: object) -> None:
        detail = str(last_error) if last_error is not None else "unknown error"
        super().__init__(
            f"Failed to analyze conversation after {attempts} attempts: {detail}",
            code="RETRIES_EXHAUSTED",
            retryable=False,
            **kwargs,
        )
        self.last_error = last_error
        self.attempts = attempts
