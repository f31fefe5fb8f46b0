"""Shared timestamp helpers."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

_FRACTION_RE = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def _normalize_fraction(match: re.Match[str]) -> str:
    # fromisoformat before 3.11 accepts only 3 or 6 fractional digits.
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 transcript timestamp into an aware UTC datetime."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    try:
        normalized = _FRACTION_RE.sub(_normalize_fraction, cleaned.replace("Z", "+00:00"), count=1)
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def iso_to_epoch_ms(value: Any) -> float | None:
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return parsed.timestamp() * 1000.0


def format_short_date(value: Any) -> str:
    """Render e.g. ``Mar 15, 2024``; ``unknown`` when the timestamp is unusable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return "unknown"
    return f"{parsed:%b} {parsed.day}, {parsed.year}"
