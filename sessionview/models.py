"""Pydantic models for the canonical session event stream."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

SourceType = Literal["codex", "claude-code"]
FileAction = Literal["add", "update", "delete"]


class _EventBase(BaseModel):
    # Cached events are shared between callers; copy with model_copy() instead.
    model_config = ConfigDict(frozen=True)

    ts: str = ""


class FileInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: FileAction
    path: str


# ── Event variants ──────────────────────────────────────────────────

class SessionStartEvent(_EventBase):
    kind: Literal["session_start"] = "session_start"
    id: str = ""
    cwd: str = ""
    model: str = ""
    source: Optional[str] = None


class UserMessageEvent(_EventBase):
    kind: Literal["user_message"] = "user_message"
    text: str = ""
    images: list[str] = Field(default_factory=list)


class AgentMessageEvent(_EventBase):
    kind: Literal["agent_message"] = "agent_message"
    text: str = ""
    phase: Optional[str] = None


class ReasoningEvent(_EventBase):
    kind: Literal["reasoning"] = "reasoning"
    text: str = ""


class FileChangeEvent(_EventBase):
    kind: Literal["file_change"] = "file_change"
    patch: str = ""
    files: list[FileInfo] = Field(default_factory=list)
    callId: Optional[str] = None
    toolName: Optional[str] = None


class ShellCommandEvent(_EventBase):
    kind: Literal["shell_command"] = "shell_command"
    cmd: str = ""
    workdir: str = ""
    callId: Optional[str] = None
    toolName: Optional[str] = None
    description: Optional[str] = None


class ToolOutputEvent(_EventBase):
    kind: Literal["tool_output"] = "tool_output"
    output: str = ""
    callId: Optional[str] = None


class TokenUsageEvent(_EventBase):
    kind: Literal["token_usage"] = "token_usage"
    total_input: int = 0
    cached_input: int = 0
    total_output: int = 0
    reasoning_output: int = 0
    total_tokens: int = 0
    context_window: int = 0
    last_input: int = 0
    last_output: int = 0


Event = Annotated[
    Union[
        SessionStartEvent,
        UserMessageEvent,
        AgentMessageEvent,
        ReasoningEvent,
        FileChangeEvent,
        ShellCommandEvent,
        ToolOutputEvent,
        TokenUsageEvent,
    ],
    Field(discriminator="kind"),
]

EventListAdapter: TypeAdapter[list[Event]] = TypeAdapter(list[Event])


def dump_events(events: list[Event]) -> list[dict]:
    """Serialize events the way viewers consume them (unset optionals dropped)."""
    return [event.model_dump(exclude_none=True) for event in events]


# ── Parse results ───────────────────────────────────────────────────

@dataclass(frozen=True)
class ParseResult:
    """Whole-file parse. ``events`` is the cached list itself, not a copy."""

    events: list[Event]
    lineCount: int


@dataclass(frozen=True)
class PollResult:
    events: list[Event]
    total: int
