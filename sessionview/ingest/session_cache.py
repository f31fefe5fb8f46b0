"""Mtime-validated session cache and incremental tail resolver.

Whole-file parses are memoized per absolute path and served verbatim while the
file's modification time is unchanged; a new mtime supersedes the entry. Live
viewers instead poll with the line offset they last saw and receive only the
events parsed from lines appended since.
"""
from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from sessionview.models import ParseResult, PollResult
from sessionview.observability import record_ingestion, start_span
from sessionview.parsers.lines import read_lines
from sessionview.parsers.platforms.registry import check_source, parse_lines, replay_state

logger = logging.getLogger("sessionview.cache")

PathLike = Union[str, Path]


@dataclass(frozen=True)
class CacheKey:
    """A cached parse is valid only for the exact mtime it was read at."""

    path: str
    mtime_ns: int


@dataclass(frozen=True)
class CacheEntry:
    key: CacheKey
    result: ParseResult


def _absolute(path: PathLike) -> str:
    return os.path.abspath(os.fspath(path))


class SessionCache:
    """Parsed-session memo shared by every serving path.

    Entries are swapped whole, never updated field by field. Two callers racing
    on the same path may both parse it; parses are pure functions of the file
    so the duplicate work is harmless.
    """

    def __init__(self, *, max_line_bytes: int | None = None) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._max_line_bytes = max_line_bytes

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return _absolute(path) in self._entries

    def _read_lines(self, path: str) -> list[str]:
        return read_lines(Path(path), max_line_bytes=self._max_line_bytes)

    def parse_session_file(self, path: PathLike, source: str) -> ParseResult:
        """Return all events for ``path``, re-parsing only when its mtime moved.

        Raises FileNotFoundError for a missing file.
        """
        check_source(source)
        abs_path = _absolute(path)
        key = CacheKey(path=abs_path, mtime_ns=os.stat(abs_path).st_mtime_ns)

        cached = self._entries.get(abs_path)
        if cached is not None and cached.key == key:
            logger.debug("Session cache hit for %s", abs_path)
            return cached.result

        started = time.perf_counter()
        with start_span("sessionview.parse_session_file", {"source": source, "path": abs_path}):
            lines = self._read_lines(abs_path)
            events = parse_lines(lines, source)
        result = ParseResult(events=events, lineCount=len(lines))
        self._entries[abs_path] = CacheEntry(key=key, result=result)

        duration_ms = (time.perf_counter() - started) * 1000.0
        record_ingestion("session", "parsed", duration_ms, source=source)
        logger.info(
            "Parsed %s session %s: %d lines, %d events in %.1fms",
            source,
            abs_path,
            result.lineCount,
            len(events),
            duration_ms,
        )
        return result

    def poll_from_offset(self, path: PathLike, source: str, offset: int) -> PollResult:
        """Return events for lines ``[offset, end)`` plus the new line total.

        Bypasses the whole-file cache. For Claude Code, lines before ``offset``
        are replayed only to rebuild token totals, so the new ``token_usage``
        events match what a full parse reports at the same position.
        """
        check_source(source)
        abs_path = _absolute(path)
        start = max(0, int(offset or 0))

        started = time.perf_counter()
        with start_span("sessionview.poll_from_offset", {"source": source, "path": abs_path, "offset": start}):
            lines = self._read_lines(abs_path)
            total = len(lines)
            if total <= start:
                return PollResult(events=[], total=total)

            if source == "claude-code":
                state = replay_state(lines[:start])
                events = parse_lines(lines[start:], source, state=state)
            else:
                events = parse_lines(lines[start:], source)

        record_ingestion("poll", "parsed", (time.perf_counter() - started) * 1000.0, source=source)
        logger.debug("Polled %s from line %d: %d new events, total %d", abs_path, start, len(events), total)
        return PollResult(events=events, total=total)

    def invalidate(self, path: PathLike) -> None:
        """Drop the entry for a file known to have been removed."""
        if self._entries.pop(_absolute(path), None) is not None:
            logger.debug("Evicted cached session %s", path)

    def clear(self) -> None:
        self._entries.clear()


# Singleton instance
session_cache = SessionCache()


def parse_session_file(path: PathLike, source: str) -> ParseResult:
    return session_cache.parse_session_file(path, source)


def poll_from_offset(path: PathLike, source: str, offset: int) -> PollResult:
    return session_cache.poll_from_offset(path, source, offset)


def clear_parsed_file_cache(path: PathLike) -> None:
    session_cache.invalidate(path)
