"""Transcript formatter: render messages as `[MM:SS] [ROLE]: text` lines relative to the first message."""
from __future__ import annotations

import math
from collections.abc import Sequence

from convo_analyzer.types import Message

EMPTY_CONVERSATION = "A conversa está vazia."


def _elapsed_seconds(timestamp_ms: int, start_ms: int) -> int:
    # Half-up rounding (2.5s -> 3s), not banker's rounding
    return math.floor((timestamp_ms - start_ms) / 1000 + 0.5)


def format_offset(elapsed_seconds: int) -> str:
    """Format elapsed seconds as MM:SS. Minutes are not capped at 59."""
    minutes, seconds = divmod(elapsed_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


def format_conversation(messages: Sequence[Message]) -> str:
    """
    One line per message, in input order. Timestamps are assumed non-decreasing;
    out-of-order input is not re-sorted or corrected.
    """
    if not messages:
        return EMPTY_CONVERSATION
    start = messages[0].timestamp
    return "\n".join(
        f"[{format_offset(_elapsed_seconds(m.timestamp, start))}] [{m.role.upper()}]: {m.text}"
        for m in messages
    )
