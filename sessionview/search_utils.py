"""Search text extraction for parsed sessions."""
from __future__ import annotations

from sessionview.models import (
    AgentMessageEvent,
    Event,
    FileChangeEvent,
    ReasoningEvent,
    ShellCommandEvent,
    UserMessageEvent,
)


def event_search_text(events: list[Event]) -> str:
    """Lowercased user-visible text of a session, for substring search.

    Tool output, token usage and session metadata are left out.
    """
    parts: list[str] = []
    for event in events:
        if isinstance(event, (UserMessageEvent, AgentMessageEvent, ReasoningEvent)):
            parts.append(event.text)
        elif isinstance(event, FileChangeEvent):
            parts.append(event.patch)
            parts.extend(info.path for info in event.files)
        elif isinstance(event, ShellCommandEvent):
            parts.append(event.cmd)
    return "\n".join(parts).lower()
