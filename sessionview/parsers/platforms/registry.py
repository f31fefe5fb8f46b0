"""Session parser registry for platform-specific implementations."""
from __future__ import annotations

from typing import Iterable

from sessionview.models import Event
from sessionview.parsers.decoder import SkipAndContinueDecoder
from sessionview.parsers.dedup import deduplicate_codex_events
from sessionview.parsers.platforms.claude_code.parser import ClaudeParseState
from sessionview.parsers.platforms.codex import parser as codex_parser

SOURCES = ("codex", "claude-code")


def check_source(source: str) -> str:
    if source not in SOURCES:
        raise ValueError(f"Unknown session source: {source!r}")
    return source


def parse_lines(
    lines: Iterable[str],
    source: str,
    *,
    state: ClaudeParseState | None = None,
    decoder: SkipAndContinueDecoder | None = None,
) -> list[Event]:
    """Parse raw JSONL lines with the parser registered for ``source``.

    Claude Code lines thread ``state`` (fresh when omitted) so token totals keep
    accumulating across calls. Codex output goes through the deduplicator.
    """
    check_source(source)
    decoder = decoder or SkipAndContinueDecoder(source)
    events: list[Event] = []

    if source == "claude-code":
        claude_state = state if state is not None else ClaudeParseState()
        for line in lines:
            record = decoder.decode(line)
            if record is not None:
                events.extend(decoder.parse(record, claude_state.parse))
        return events

    for line in lines:
        record = decoder.decode(line)
        if record is not None:
            events.extend(decoder.parse(record, codex_parser.parse_event))
    return deduplicate_codex_events(events)


def replay_state(lines: Iterable[str]) -> ClaudeParseState:
    """Rebuild Claude Code parse state over already-delivered lines.

    Events produced while replaying are discarded; only the accumulator and the
    session_start flag are kept.
    """
    state = ClaudeParseState()
    decoder = SkipAndContinueDecoder("claude-code", report=False)
    for line in lines:
        record = decoder.decode(line)
        if record is not None:
            decoder.parse(record, state.parse)
    return state
