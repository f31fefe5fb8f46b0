"""Running token totals for Claude Code transcripts."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sessionview.models import TokenUsageEvent


def _coerce_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    try:
        return int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return default


@dataclass
class TokenAccumulator:
    """Cumulative usage since session start, owned by a single parse pass."""

    input: int = 0
    output: int = 0
    cacheRead: int = 0
    cacheCreate: int = 0

    def add_usage(self, usage: dict[str, Any]) -> tuple[int, int]:
        """Fold one ``usage`` block in; returns that record's (input, output) delta."""
        input_tokens = _coerce_int(usage.get("input_tokens"))
        output_tokens = _coerce_int(usage.get("output_tokens"))
        cache_read = _coerce_int(usage.get("cache_read_input_tokens"))
        cache_create = _coerce_int(usage.get("cache_creation_input_tokens"))

        self.input += input_tokens
        self.output += output_tokens
        self.cacheRead += cache_read
        self.cacheCreate += cache_create
        return input_tokens + cache_read + cache_create, output_tokens

    def snapshot(self, ts: str, last_input: int = 0, last_output: int = 0) -> TokenUsageEvent:
        return TokenUsageEvent(
            ts=ts,
            total_input=self.input + self.cacheRead + self.cacheCreate,
            cached_input=self.cacheRead,
            total_output=self.output,
            reasoning_output=0,
            total_tokens=self.input + self.output + self.cacheRead + self.cacheCreate,
            context_window=0,
            last_input=last_input,
            last_output=last_output,
        )

    def copy(self) -> "TokenAccumulator":
        return TokenAccumulator(self.input, self.output, self.cacheRead, self.cacheCreate)
