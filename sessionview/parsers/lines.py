"""Bounded-memory JSONL line extraction.

Transcripts can contain single records that embed whole files, so a line is
never allowed to grow past ``max_line_bytes``. An oversized line is dropped
whole (not truncated) and extraction resumes at the following newline.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Iterator

from sessionview import config

logger = logging.getLogger("sessionview.lines")

_NEWLINE = b"\n"


def iter_lines(
    stream: BinaryIO,
    *,
    max_line_bytes: int | None = None,
    chunk_size: int | None = None,
) -> Iterator[str]:
    """Yield newline-stripped, non-empty lines from a binary stream.

    The final line is yielded even without a trailing newline unless it was
    being dropped for size.
    """
    limit = config.MAX_LINE_BYTES if max_line_bytes is None else max_line_bytes
    read_size = config.READ_CHUNK_BYTES if chunk_size is None else chunk_size

    pending = bytearray()
    skipping = False

    while True:
        chunk = stream.read(read_size)
        if not chunk:
            break
        start = 0
        while start < len(chunk):
            nl_idx = chunk.find(_NEWLINE, start)
            if nl_idx == -1:
                if not skipping:
                    if len(pending) + (len(chunk) - start) > limit:
                        logger.warning("Dropping transcript line larger than %d bytes", limit)
                        skipping = True
                        pending = bytearray()
                    else:
                        pending += chunk[start:]
                break

            if not skipping:
                if len(pending) + (nl_idx - start) <= limit:
                    pending += chunk[start:nl_idx]
                    if pending:
                        yield pending.decode("utf-8", errors="replace")
                else:
                    logger.warning("Dropping transcript line larger than %d bytes", limit)
            pending = bytearray()
            skipping = False
            start = nl_idx + 1

    if pending and not skipping:
        yield pending.decode("utf-8", errors="replace")


def iter_file_lines(path: Path, **kwargs) -> Iterator[str]:
    with open(path, "rb") as handle:
        yield from iter_lines(handle, **kwargs)


def read_lines(path: Path, **kwargs) -> list[str]:
    """Materialize every line of ``path``; offsets index into this list."""
    return list(iter_file_lines(path, **kwargs))
