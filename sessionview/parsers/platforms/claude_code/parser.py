"""Parse Claude Code JSONL records into canonical events."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from sessionview.models import (
    AgentMessageEvent,
    Event,
    FileChangeEvent,
    FileInfo,
    ReasoningEvent,
    SessionStartEvent,
    ShellCommandEvent,
    ToolOutputEvent,
    UserMessageEvent,
)
from sessionview.parsers.tokens import TokenAccumulator

# Injected scaffolding rather than anything the user typed.
_SUPPRESSED_USER_MARKERS = ("<task-notification>", "<system-reminder>")

# Informational tools rendered as a one-line pseudo command.
_SUMMARY_TOOLS = {"Read", "Glob", "Grep", "WebSearch", "WebFetch", "Task", "TaskOutput"}
_FALLBACK_INPUT_CHARS = 200


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _blocks(content: Any) -> list[dict[str, Any]]:
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


def _is_suppressed_text(text: str) -> bool:
    return any(marker in text for marker in _SUPPRESSED_USER_MARKERS)


def _extract_images(message: dict[str, Any]) -> list[str]:
    images: list[str] = []
    for block in _blocks(message.get("content")):
        if block.get("type") != "image":
            continue
        source = block.get("source")
        if not isinstance(source, dict) or not _as_str(source.get("data")):
            continue
        mime = _as_str(source.get("media_type")) or "image/png"
        images.append(f"data:{mime};base64,{source['data']}")
    return images


def _tool_result_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    return "\n".join(_as_str(item.get("text")) for item in _blocks(content) if item.get("type") == "text")


def _parse_tool_results(blocks: list[dict[str, Any]], ts: str) -> list[Event]:
    events: list[Event] = []
    for block in blocks:
        if block.get("type") != "tool_result":
            continue
        output = _tool_result_text(block.get("content"))
        if output:
            events.append(ToolOutputEvent(ts=ts, output=output, callId=_as_str(block.get("tool_use_id"))))
    return events


def _parse_user(record: dict[str, Any], ts: str) -> list[Event]:
    message = record.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")

    if isinstance(content, str):
        if _is_suppressed_text(content):
            return []
        if record.get("userType") == "tool_result" or record.get("toolUseResult"):
            return []
        return [UserMessageEvent(ts=ts, text=content, images=_extract_images(message))]

    if isinstance(content, list):
        blocks = _blocks(content)
        if any(block.get("type") == "tool_result" for block in blocks):
            return _parse_tool_results(blocks, ts)
        text_parts = [_as_str(block.get("text")) for block in blocks if block.get("type") == "text"]
        if not text_parts:
            return []
        text = "\n".join(text_parts)
        if _is_suppressed_text(text):
            return []
        return [UserMessageEvent(ts=ts, text=text, images=_extract_images(message))]

    return []


def _prefixed_lines(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.split("\n"))


def _parse_tool_use(block: dict[str, Any], ts: str) -> Event:
    name = _as_str(block.get("name"))
    raw_input = block.get("input")
    tool_input = raw_input if isinstance(raw_input, dict) else {}
    call_id = _as_str(block.get("id"))

    if name == "Edit":
        file_path = _as_str(tool_input.get("file_path"))
        old_string = _as_str(tool_input.get("old_string"))
        new_string = _as_str(tool_input.get("new_string"))
        patch = f"*** Update File: {file_path}\n"
        if old_string:
            patch += _prefixed_lines(old_string, "- ") + "\n" + _prefixed_lines(new_string, "+ ")
        return FileChangeEvent(
            ts=ts,
            patch=patch,
            files=[FileInfo(action="update", path=file_path)],
            callId=call_id,
            toolName="Edit",
        )

    if name == "Write":
        file_path = _as_str(tool_input.get("file_path"))
        patch = f"*** Add File: {file_path}\n" + _prefixed_lines(_as_str(tool_input.get("content")), "+ ")
        return FileChangeEvent(
            ts=ts,
            patch=patch,
            files=[FileInfo(action="add", path=file_path)],
            callId=call_id,
            toolName="Write",
        )

    if name == "Bash":
        return ShellCommandEvent(
            ts=ts,
            cmd=_as_str(tool_input.get("command")),
            workdir=_as_str(tool_input.get("cwd")),
            callId=call_id,
            description=_as_str(tool_input.get("description")),
        )

    if name in _SUMMARY_TOOLS:
        summary = name
        if name == "Read" and _as_str(tool_input.get("file_path")):
            summary = f"Read {tool_input['file_path']}"
        elif name in ("Glob", "Grep") and _as_str(tool_input.get("pattern")):
            summary = f"{name} {tool_input['pattern']}"
        elif name == "WebSearch" and _as_str(tool_input.get("query")):
            summary = f"WebSearch: {tool_input['query']}"
        return ShellCommandEvent(ts=ts, cmd=summary, workdir="", callId=call_id, toolName=name)

    encoded = json.dumps(tool_input, separators=(",", ":"), ensure_ascii=False, default=str)
    return ShellCommandEvent(
        ts=ts,
        cmd=f"{name} {encoded[:_FALLBACK_INPUT_CHARS]}",
        workdir="",
        callId=call_id,
        toolName=name,
    )


def _parse_assistant_blocks(message: dict[str, Any], ts: str) -> list[Event]:
    events: list[Event] = []
    for block in _blocks(message.get("content")):
        block_type = block.get("type")
        if block_type == "thinking" and _as_str(block.get("thinking")):
            events.append(ReasoningEvent(ts=ts, text=block["thinking"]))
        elif block_type == "text" and _as_str(block.get("text")).strip():
            events.append(AgentMessageEvent(ts=ts, text=block["text"]))
        elif block_type == "tool_use":
            events.append(_parse_tool_use(block, ts))
    return events


def parse_claude_event(record: dict[str, Any], accumulator: TokenAccumulator | None = None) -> list[Event]:
    """Map one decoded Claude Code record to zero or more events.

    Assistant records that carry a ``usage`` block fold it into ``accumulator``
    and end with a ``token_usage`` event holding the running totals.
    """
    ts = _as_str(record.get("timestamp"))
    record_type = record.get("type")

    if record_type == "user":
        return _parse_user(record, ts)

    if record_type == "assistant":
        message = record.get("message")
        if not isinstance(message, dict):
            return []
        events = _parse_assistant_blocks(message, ts)
        usage = message.get("usage")
        if isinstance(usage, dict) and accumulator is not None:
            last_input, last_output = accumulator.add_usage(usage)
            events.append(accumulator.snapshot(ts, last_input, last_output))
        return events

    return []


def build_claude_session_start(record: dict[str, Any]) -> SessionStartEvent:
    """Session metadata from the first user record that names its session."""
    return SessionStartEvent(
        ts=_as_str(record.get("timestamp")),
        id=_as_str(record.get("sessionId")),
        cwd=_as_str(record.get("cwd")),
        model="claude",
        source="claude-code",
    )


@dataclass
class ClaudeParseState:
    """Everything a Claude Code pass carries from one line to the next."""

    accumulator: TokenAccumulator = field(default_factory=TokenAccumulator)
    session_started: bool = False

    def parse(self, record: dict[str, Any]) -> list[Event]:
        events = parse_claude_event(record, self.accumulator)
        if not self.session_started and record.get("type") == "user" and _as_str(record.get("sessionId")):
            self.session_started = True
            return [build_claude_session_start(record), *events]
        return events
