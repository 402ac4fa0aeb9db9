"""Observability: redaction and structured attempt logs. Never log API keys or raw prompts."""
from __future__ import annotations

import hashlib
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_SECRET_PATTERNS = [
    re.compile(r"\b(?:sk-[a-zA-Z0-9-]{20,})\b", re.IGNORECASE),  # OpenAI/OpenRouter-style
    re.compile(r"\b(?:AIza[a-zA-Z0-9_-]{35})\b"),  # Google API key style
    re.compile(r"\bBearer\s+[a-zA-Z0-9_.-]+\b", re.IGNORECASE),
    re.compile(r"([?&]key=)[^&\s]+"),
]
_PII_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")  # email
_PREVIEW_MAX_CHARS = 200


def redact_preview(text: str, max_chars: int = _PREVIEW_MAX_CHARS) -> str:
    """Redact secrets and PII, then truncate. Use for prompt previews and error bodies."""
    if not text:
        return ""
    out = text
    for pat in _SECRET_PATTERNS:
        if pat.groups:
            out = pat.sub(r"\1[REDACTED]", out)
        else:
            out = pat.sub("[REDACTED]", out)
    out = _PII_PATTERN.sub("[EMAIL]", out)
    if len(out) > max_chars:
        out = out[:max_chars] + "..."
    return out


def stable_hash(content: str) -> str:
    """SHA256 hex digest; used to fingerprint prompt + schema in logs."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def log_analysis_attempt(
    *,
    provider: str,
    model: str,
    attempt: int,
    max_attempts: int,
    latency_ms: int,
    status: str,
    prompt_sha256: str,
    error_code: str | None = None,
    backoff_s: float | None = None,
) -> None:
    """Emit one structured log record per HTTP attempt."""
    extra: dict[str, Any] = {
        "provider": provider,
        "model": model,
        "attempt": attempt,
        "max_attempts": max_attempts,
        "latency_ms": latency_ms,
        "status": status,
        "prompt_sha256": prompt_sha256,
    }
    if error_code is not None:
        extra["error_code"] = error_code
    if backoff_s is not None:
        extra["backoff_s"] = backoff_s
    if status == "SUCCEEDED":
        logger.info("analysis_attempt", extra=extra)
    else:
        logger.warning("analysis_attempt", extra=extra)


def log_prompt_preview(system_prompt: str, user_prompt: str) -> None:
    logger.debug(
        "analysis_prompt system=%r user=%r",
        redact_preview(system_prompt),
        redact_preview(user_prompt),
    )
