"""Skip-and-continue policy for per-line decoding and parsing.

A transcript that is still being written routinely ends in a half-flushed
record, and both CLIs change their record shapes between releases. One bad
line must never cost the rest of the session, so every per-line failure is
absorbed here and nowhere else.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable

from sessionview.models import Event
from sessionview.observability import record_parser_failure

logger = logging.getLogger("sessionview.parsers")

# pydantic.ValidationError subclasses ValueError.
_RECORD_ERRORS = (ValueError, TypeError, KeyError, AttributeError, IndexError, ArithmeticError, RecursionError)


class SkipAndContinueDecoder:
    """Decode JSONL records and run parsers, converting failures into skips."""

    def __init__(self, source: str, *, report: bool = True) -> None:
        self.source = source
        self.report = report
        self.skipped = 0

    def _skip(self, reason: str, exc: Exception | None = None) -> None:
        self.skipped += 1
        if not self.report:
            return
        logger.debug("Skipping %s record: %s%s", self.source, reason, f" ({exc})" if exc else "")
        record_parser_failure(self.source, source=self.source)

    def decode(self, line: str) -> dict[str, Any] | None:
        try:
            record = json.loads(line)
        except (ValueError, RecursionError) as exc:
            # Deeply nested arrays exhaust the decoder stack well below the line limit.
            self._skip("invalid json", exc)
            return None
        if not isinstance(record, dict):
            self._skip("not a json object")
            return None
        return record

    def parse(self, record: dict[str, Any], parse_fn: Callable[[dict[str, Any]], list[Event]]) -> list[Event]:
        try:
            return parse_fn(record)
        except _RECORD_ERRORS as exc:
            self._skip("unrecognized record shape", exc)
            return []
