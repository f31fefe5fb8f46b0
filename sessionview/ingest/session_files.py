"""Resolve session references to files and load (possibly rotated) sessions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

from sessionview import config
from sessionview.date_utils import iso_to_epoch_ms
from sessionview.ingest.session_cache import SessionCache, session_cache
from sessionview.models import Event, SessionStartEvent

logger = logging.getLogger("sessionview.cache")


@dataclass(frozen=True)
class ResolvedSession:
    path: Path
    source: str


def resolve_session_file(
    file_ref: str,
    *,
    codex_dir: Path | None = None,
    claude_dir: Path | None = None,
) -> ResolvedSession:
    """Map a reference to a path. ``claude:<project>/<file>`` is Claude Code, anything else Codex."""
    if file_ref.startswith(config.CLAUDE_REF_PREFIX):
        root = claude_dir if claude_dir is not None else config.CLAUDE_PROJECTS_DIR
        return ResolvedSession(path=root / file_ref[len(config.CLAUDE_REF_PREFIX):], source="claude-code")
    root = codex_dir if codex_dir is not None else config.CODEX_SESSIONS_DIR
    return ResolvedSession(path=root / file_ref, source="codex")


def split_refs(refs: Union[str, Iterable[str]]) -> list[str]:
    raw = refs.split(",") if isinstance(refs, str) else list(refs)
    return [ref.strip() for ref in raw if ref and ref.strip()]


def _order_events(events: list[Event]) -> list[Event]:
    """session_start first, then by timestamp; untimed events keep their slot."""
    keyed: list[tuple[int, float, Event]] = []
    last_epoch = float("-inf")
    for event in events:
        epoch = iso_to_epoch_ms(event.ts)
        if epoch is None:
            epoch = last_epoch
        else:
            last_epoch = epoch
        keyed.append((0 if isinstance(event, SessionStartEvent) else 1, epoch, event))
    keyed.sort(key=lambda item: (item[0], item[1]))
    return [event for _, _, event in keyed]


def load_session(
    refs: Union[str, Iterable[str]],
    *,
    cache: SessionCache | None = None,
    codex_dir: Path | None = None,
    claude_dir: Path | None = None,
) -> list[Event] | None:
    """Load one logical session from one or more files.

    Missing files are skipped. Returns None when no file produced any event.
    Only the first session_start survives the merge.
    """
    cache = cache if cache is not None else session_cache
    merged: list[Event] = []
    for ref in split_refs(refs):
        resolved = resolve_session_file(ref, codex_dir=codex_dir, claude_dir=claude_dir)
        if not resolved.path.is_file():
            logger.debug("Skipping missing session file %s", resolved.path)
            continue
        merged.extend(cache.parse_session_file(resolved.path, resolved.source).events)

    if not merged:
        return None

    ordered: list[Event] = []
    seen_start = False
    for event in _order_events(merged):
        if isinstance(event, SessionStartEvent):
            if seen_start:
                continue
            seen_start = True
        ordered.append(event)
    return ordered
