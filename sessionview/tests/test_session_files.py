import json
import tempfile
import unittest
from pathlib import Path

from sessionview.ingest.session_cache import SessionCache, session_cache
from sessionview.ingest.session_files import load_session, resolve_session_file, split_refs


class ResolveSessionFileTests(unittest.TestCase):
    def test_claude_prefix_maps_into_projects_dir(self) -> None:
        resolved = resolve_session_file(
            "claude:-home-me-repo/abc.jsonl", codex_dir=Path("/c"), claude_dir=Path("/p")
        )
        self.assertEqual(resolved.path, Path("/p/-home-me-repo/abc.jsonl"))
        self.assertEqual(resolved.source, "claude-code")

    def test_other_refs_map_into_codex_dir(self) -> None:
        resolved = resolve_session_file("2026/02/16/rollout-1.jsonl", codex_dir=Path("/c"), claude_dir=Path("/p"))
        self.assertEqual(resolved.path, Path("/c/2026/02/16/rollout-1.jsonl"))
        self.assertEqual(resolved.source, "codex")

    def test_split_refs(self) -> None:
        self.assertEqual(split_refs(" a.jsonl, ,b.jsonl "), ["a.jsonl", "b.jsonl"])
        self.assertEqual(split_refs(["a.jsonl", ""]), ["a.jsonl"])


class LoadSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.codex_dir = Path(tmpdir.name) / "codex"
        self.claude_dir = Path(tmpdir.name) / "claude"
        self.codex_dir.mkdir()
        self.claude_dir.mkdir()
        self.cache = SessionCache()

    def _write(self, path: Path, records: list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(json.dumps(r) for r in records), encoding="utf-8")

    def _load(self, refs):
        return load_session(refs, cache=self.cache, codex_dir=self.codex_dir, claude_dir=self.claude_dir)

    def test_rotated_codex_files_merge_with_single_session_start(self) -> None:
        self._write(
            self.codex_dir / "part2.jsonl",
            [
                {"timestamp": "2026-02-16T11:00:00Z", "type": "session_meta", "payload": {"id": "s1", "cwd": "/repo"}},
                {"timestamp": "2026-02-16T11:00:05Z", "type": "event_msg", "payload": {"type": "user_message", "message": "later"}},
            ],
        )
        self._write(
            self.codex_dir / "part1.jsonl",
            [
                {"timestamp": "2026-02-16T10:00:00Z", "type": "session_meta", "payload": {"id": "s1", "cwd": "/repo"}},
                {"timestamp": "2026-02-16T10:00:05Z", "type": "event_msg", "payload": {"type": "user_message", "message": "earlier"}},
            ],
        )
        events = self._load("part2.jsonl,part1.jsonl")
        self.assertIsNotNone(events)
        assert events is not None
        self.assertEqual([e.kind for e in events], ["session_start", "user_message", "user_message"])
        self.assertEqual(events[0].ts, "2026-02-16T10:00:00Z")
        self.assertEqual([e.text for e in events[1:]], ["earlier", "later"])

    def test_missing_files_are_skipped(self) -> None:
        self._write(
            self.claude_dir / "proj" / "s.jsonl",
            [{"type": "user", "timestamp": "2026-02-16T10:00:00Z", "sessionId": "s", "message": {"content": "hi"}}],
        )
        events = self._load(["claude:proj/missing.jsonl", "claude:proj/s.jsonl"])
        assert events is not None
        self.assertEqual([e.kind for e in events], ["session_start", "user_message"])

    def test_injected_empty_cache_is_used(self) -> None:
        self.addCleanup(session_cache.clear)
        session_cache.clear()
        self._write(
            self.codex_dir / "only.jsonl",
            [{"timestamp": "2026-02-16T10:00:00Z", "type": "event_msg", "payload": {"type": "user_message", "message": "hi"}}],
        )
        self.assertEqual(len(self.cache), 0)
        self.assertIsNotNone(self._load("only.jsonl"))
        self.assertIn(self.codex_dir / "only.jsonl", self.cache)
        self.assertEqual(len(session_cache), 0)

    def test_nothing_loaded_returns_none(self) -> None:
        self.assertIsNone(self._load("nope.jsonl"))

    def test_untimed_events_stay_next_to_their_neighbours(self) -> None:
        self._write(
            self.claude_dir / "proj" / "s.jsonl",
            [
                {"type": "user", "timestamp": "2026-02-16T10:00:00Z", "sessionId": "s", "message": {"content": "first"}},
                {"type": "user", "message": {"content": "untimed"}},
                {"type": "user", "timestamp": "2026-02-16T10:00:09Z", "message": {"content": "last"}},
            ],
        )
        events = self._load("claude:proj/s.jsonl")
        assert events is not None
        self.assertEqual([e.text for e in events if e.kind == "user_message"], ["first", "untimed", "last"])

    def test_cached_events_are_not_reordered_in_place(self) -> None:
        path = self.codex_dir / "a.jsonl"
        self._write(
            path,
            [
                {"timestamp": "2026-02-16T10:00:09Z", "type": "event_msg", "payload": {"type": "agent_reasoning", "text": "b"}},
                {"timestamp": "2026-02-16T10:00:00Z", "type": "session_meta", "payload": {"id": "s1"}},
            ],
        )
        self._load("a.jsonl")
        cached = self.cache.parse_session_file(path, "codex")
        self.assertEqual([e.kind for e in cached.events], ["reasoning", "session_start"])


if __name__ == "__main__":
    unittest.main()
