import unittest

from sessionview.compact import to_compact_markdown
from sessionview.models import (
    AgentMessageEvent,
    FileChangeEvent,
    FileInfo,
    SessionStartEvent,
    ShellCommandEvent,
    UserMessageEvent,
)

TS = "2024-03-15T14:30:00.000Z"


def session_start(cwd: str = "/Users/alice/myproject", model: str = "claude") -> SessionStartEvent:
    return SessionStartEvent(ts=TS, id="sess-1", cwd=cwd, model=model)


def file_change(path: str, action: str, patch: str | None = None) -> FileChangeEvent:
    verb = {"add": "Add", "update": "Update", "delete": "Delete"}[action]
    return FileChangeEvent(
        ts=TS,
        patch=patch if patch is not None else f"*** {verb} File: {path}\n+ line",
        files=[FileInfo(action=action, path=path)],
    )


class CompactHeaderTests(unittest.TestCase):
    def test_header_fields(self) -> None:
        md = to_compact_markdown([session_start("/Users/alice/myproject", "claude-opus")])
        self.assertIn("# Session Context: myproject", md)
        self.assertIn("**Directory:** ~/myproject", md)
        self.assertIn("**Date:** Mar 15, 2024", md)
        self.assertIn("**Model:** claude-opus", md)

    def test_without_session_start(self) -> None:
        md = to_compact_markdown([])
        self.assertIn("# Session Context: session", md)
        self.assertIn("**Date:** unknown", md)
        self.assertNotIn("**Directory:**", md)


class CompactSectionTests(unittest.TestCase):
    def test_requests_are_numbered_and_truncated(self) -> None:
        md = to_compact_markdown(
            [
                session_start(),
                UserMessageEvent(ts=TS, text="Fix the\n\nlogin bug"),
                UserMessageEvent(ts=TS, text="x" * 500),
            ]
        )
        self.assertIn("## Requests", md)
        self.assertIn("1. Fix the login bug", md)
        self.assertIn("2. " + "x" * 300 + "…", md)
        self.assertIn('> Last request: "' + "x" * 400 + '"', md)

    def test_files_changed_counts_patches(self) -> None:
        md = to_compact_markdown(
            [session_start(), file_change("src/a.py", "add"), file_change("src/a.py", "update"), file_change("b.md", "delete")]
        )
        self.assertIn("- `src/a.py` — update (2 patches)", md)
        self.assertIn("- `b.md` — delete", md)
        self.assertIn("### src/a.py (add)", md)
        self.assertIn("```diff", md)

    def test_long_patches_are_truncated(self) -> None:
        patch = "\n".join(f"+ line {i}" for i in range(200))
        md = to_compact_markdown([file_change("big.py", "add", patch)])
        self.assertIn("+ line 149", md)
        self.assertNotIn("+ line 150", md)
        self.assertIn("... [50 more lines truncated]", md)

    def test_blank_patches_are_not_rendered(self) -> None:
        md = to_compact_markdown([file_change("empty.py", "update", "  ")])
        self.assertIn("- `empty.py` — update", md)
        self.assertNotIn("### empty.py", md)

    def test_commands_show_shortened_workdir(self) -> None:
        md = to_compact_markdown(
            [ShellCommandEvent(ts=TS, cmd="npm test", workdir="/home/bob/app"), ShellCommandEvent(ts=TS, cmd="ls")]
        )
        self.assertIn("## Commands run", md)
        self.assertIn("- `npm test` # in ~/app", md)
        self.assertIn("- `ls`", md)

    def test_agent_messages_are_not_listed(self) -> None:
        md = to_compact_markdown([session_start(), AgentMessageEvent(ts=TS, text="secret reply")])
        self.assertNotIn("secret reply", md)
        self.assertNotIn("## Continue from here", md)


if __name__ == "__main__":
    unittest.main()
