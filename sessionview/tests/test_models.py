import unittest

from pydantic import ValidationError

from sessionview.models import (
    EventListAdapter,
    FileChangeEvent,
    ShellCommandEvent,
    TokenUsageEvent,
    UserMessageEvent,
    dump_events,
)


class EventModelTests(unittest.TestCase):
    def test_kind_discriminates_variants(self) -> None:
        events = EventListAdapter.validate_python(
            [
                {"kind": "user_message", "ts": "", "text": "hi"},
                {"kind": "file_change", "patch": "", "files": [{"action": "add", "path": "a.txt"}]},
                {"kind": "token_usage", "total_tokens": 9},
            ]
        )
        self.assertIsInstance(events[0], UserMessageEvent)
        self.assertIsInstance(events[1], FileChangeEvent)
        self.assertIsInstance(events[2], TokenUsageEvent)

    def test_unknown_kind_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            EventListAdapter.validate_python([{"kind": "telepathy"}])

    def test_file_actions_are_restricted(self) -> None:
        with self.assertRaises(ValidationError):
            FileChangeEvent(files=[{"action": "rename", "path": "a"}])

    def test_events_are_frozen(self) -> None:
        event = ShellCommandEvent(cmd="ls")
        with self.assertRaises(ValidationError):
            event.cmd = "rm -rf /"

    def test_dump_drops_unset_optionals(self) -> None:
        self.assertEqual(
            dump_events([ShellCommandEvent(ts="t", cmd="ls", workdir="/w")]),
            [{"ts": "t", "kind": "shell_command", "cmd": "ls", "workdir": "/w"}],
        )


if __name__ == "__main__":
    unittest.main()
