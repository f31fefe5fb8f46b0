#!/usr/bin/env python3
"""Dump the canonical event stream of a Codex or Claude Code session.

Usage:
  python -m sessionview.scripts.session_dump 2026/10/18/rollout-abc.jsonl
  python -m sessionview.scripts.session_dump claude:-home-me-proj/1234.jsonl --offset 40
  python -m sessionview.scripts.session_dump a.jsonl,b.jsonl --compact
"""
from __future__ import annotations

import argparse
import json
import logging
import sys

from sessionview.compact import to_compact_markdown
from sessionview.ingest.session_cache import poll_from_offset
from sessionview.ingest.session_files import load_session, resolve_session_file, split_refs
from sessionview.models import dump_events
from sessionview.observability import initialize, shutdown

logger = logging.getLogger("sessionview.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Print normalized session events.")
    parser.add_argument("refs", help="Session reference(s), comma separated; prefix Claude Code files with 'claude:'")
    parser.add_argument("--offset", type=int, default=None, help="Only emit events for lines after this offset")
    parser.add_argument("--compact", action="store_true", help="Print a compact markdown summary instead")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    initialize()
    try:
        return _run(args)
    finally:
        shutdown()


def _run(args: argparse.Namespace) -> int:
    if args.offset is not None:
        refs = split_refs(args.refs)
        if len(refs) != 1:
            logger.error("--offset takes exactly one session reference")
            return 2
        resolved = resolve_session_file(refs[0])
        if not resolved.path.is_file():
            logger.error("Session file not found: %s", resolved.path)
            return 1
        polled = poll_from_offset(resolved.path, resolved.source, args.offset)
        print(json.dumps({"events": dump_events(polled.events), "total": polled.total}, indent=2))
        return 0

    events = load_session(args.refs)
    if events is None:
        logger.error("No session events found for %s", args.refs)
        return 1

    if args.compact:
        print(to_compact_markdown(events))
    else:
        print(json.dumps({"events": dump_events(events)}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
