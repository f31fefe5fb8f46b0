"""File watcher service using watchfiles.

Monitors the Codex and Claude Code session roots and evicts cached parses of
transcripts that were deleted. Modified files need no action here: the cache
notices the new mtime on the next read.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

from watchfiles import Change, awatch

from sessionview.ingest.session_cache import SessionCache, session_cache

logger = logging.getLogger("sessionview.watcher")


class SessionFileWatcher:
    """Background watcher that keeps the session cache honest about deletions.

    Uses `watchfiles` (Rust-accelerated) for efficient watching.
    """

    def __init__(self, cache: SessionCache | None = None):
        self._cache = cache if cache is not None else session_cache
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    async def start(self, watch_dirs: Iterable[Path]) -> None:
        """Start watching session roots in a background task."""
        if self._running:
            logger.warning("Session file watcher already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop([Path(p) for p in watch_dirs]))
        logger.info("Session file watcher started")

    async def stop(self) -> None:
        """Stop the file watcher."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Session file watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, watch_dirs: list[Path]) -> None:
        watch_paths = [p for p in watch_dirs if p.exists()]

        if not watch_paths:
            logger.warning("No session directories exist, watcher has nothing to monitor")
            self._running = False
            return

        logger.info(f"Watching {len(watch_paths)} directories: {[str(p) for p in watch_paths]}")

        try:
            async for changes in awatch(*watch_paths, stop_event=self._stop_event):
                if not self._running:
                    break
                self.apply_changes(changes)
        except asyncio.CancelledError:
            logger.info("Session file watcher task cancelled")
        except Exception as e:
            logger.error(f"Session file watcher error: {e}")
        finally:
            self._running = False

    def apply_changes(self, changes: set[tuple[Change, str]]) -> list[tuple[str, Path]]:
        """Evict deleted transcripts; returns the classified changes."""
        classified = self._classify_changes(changes)
        for change_type, path in classified:
            if change_type == "deleted":
                self._cache.invalidate(path)
        if classified:
            logger.debug(f"Processed {len(classified)} session file changes")
        return classified

    def _classify_changes(self, changes: set[tuple[Change, str]]) -> list[tuple[str, Path]]:
        """Classify raw watchfiles changes into (change_type, path) pairs.

        Only session transcripts (.jsonl) are returned.
        """
        result = []
        for change_type, path_str in changes:
            path = Path(path_str)

            if path.suffix != ".jsonl":
                continue

            if change_type == Change.deleted:
                result.append(("deleted", path))
            elif change_type in (Change.modified, Change.added):
                result.append(("modified", path))

        return sorted(result, key=lambda item: str(item[1]))


# Singleton instance
session_file_watcher = SessionFileWatcher()
