import asyncio
import json
import tempfile
import unittest
from pathlib import Path

from watchfiles import Change

from sessionview.ingest.file_watcher import SessionFileWatcher
from sessionview.ingest.session_cache import SessionCache


class SessionFileWatcherTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.tmp = Path(tmpdir.name)
        self.cache = SessionCache()
        self.watcher = SessionFileWatcher(cache=self.cache)

    def _cached_session(self, name: str) -> Path:
        path = self.tmp / name
        path.write_text(json.dumps({"type": "event_msg", "payload": {"type": "agent_reasoning", "text": "x"}}) + "\n")
        self.cache.parse_session_file(path, "codex")
        return path

    def test_deleted_transcript_is_evicted(self) -> None:
        kept = self._cached_session("kept.jsonl")
        removed = self._cached_session("removed.jsonl")

        classified = self.watcher.apply_changes(
            {
                (Change.deleted, str(removed)),
                (Change.modified, str(kept)),
                (Change.deleted, str(self.tmp / "notes.md")),
            }
        )

        self.assertEqual(classified, [("modified", kept), ("deleted", removed)])
        self.assertIn(kept, self.cache)
        self.assertNotIn(removed, self.cache)

    def test_added_files_are_classified_as_modified(self) -> None:
        path = self.tmp / "new.jsonl"
        self.assertEqual(self.watcher.apply_changes({(Change.added, str(path))}), [("modified", path)])

    async def test_watcher_with_no_existing_dirs_stops_itself(self) -> None:
        await self.watcher.start([self.tmp / "missing"])
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        self.assertFalse(self.watcher.is_running)
        await self.watcher.stop()

    async def test_start_twice_is_ignored(self) -> None:
        await self.watcher.start([self.tmp])
        task = self.watcher._task
        await self.watcher.start([self.tmp])
        self.assertIs(self.watcher._task, task)
        await self.watcher.stop()
        self.assertFalse(self.watcher.is_running)


if __name__ == "__main__":
    unittest.main()
