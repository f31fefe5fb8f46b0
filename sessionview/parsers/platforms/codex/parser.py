"""Parse Codex CLI JSONL records into canonical events.

Codex writes three top-level record types:

* ``session_meta`` - one per rotated file, carries the session id and cwd.
* ``event_msg`` - UI-facing notifications (user/agent messages, reasoning,
  token counts).
* ``response_item`` - the raw model conversation (messages, tool calls and
  their outputs).

User and agent messages show up in both ``event_msg`` and ``response_item``;
``sessionview.parsers.dedup`` collapses the pairs after a full pass.
"""
from __future__ import annotations

import json
import math
import re
from typing import Any

from sessionview.models import (
    AgentMessageEvent,
    Event,
    FileChangeEvent,
    FileInfo,
    ReasoningEvent,
    SessionStartEvent,
    ShellCommandEvent,
    TokenUsageEvent,
    ToolOutputEvent,
    UserMessageEvent,
)

_PATCH_FILE_PATTERN = re.compile(r"\*\*\* (Update|Add|Delete) File: (.+)")
# cat > path <<'EOF'\n...\nEOF
_HEREDOC_WRITE_PATTERN = re.compile(
    r"^cat\s+>\s+(\S+)\s+<<\s*['\"]?(\w+)['\"]?\n([\s\S]*?)\n\2[ \t]*\Z"
)


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return int(value)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _call_id(payload: dict[str, Any]) -> str | None:
    value = payload.get("call_id")
    return value if isinstance(value, str) and value else None


def _string_items(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item]


def _load_arguments(raw: Any) -> dict[str, Any] | None:
    """Function-call arguments arrive JSON-encoded; None when they don't decode."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_patch_files(patch: str) -> list[FileInfo]:
    """Collect ``*** {Update|Add|Delete} File: <path>`` headers in order."""
    files: list[FileInfo] = []
    for match in _PATCH_FILE_PATTERN.finditer(patch or ""):
        files.append(FileInfo(action=match.group(1).lower(), path=match.group(2)))
    return files


def heredoc_to_file_change(cmd: str, ts: str, call_id: str | None) -> FileChangeEvent | None:
    """Reinterpret ``cat > path <<DELIM`` file writes as an add-file patch."""
    match = _HEREDOC_WRITE_PATTERN.match(cmd or "")
    if not match:
        return None
    file_path = match.group(1)
    body = "\n".join("+" + line for line in match.group(3).split("\n"))
    patch = f"*** Begin Patch\n*** Add File: {file_path}\n{body}\n*** End Patch"
    return FileChangeEvent(
        ts=ts,
        patch=patch,
        files=[FileInfo(action="add", path=file_path)],
        callId=call_id,
    )


# ── event_msg ───────────────────────────────────────────────────────

def _parse_event_msg(payload: dict[str, Any], ts: str) -> list[Event]:
    subtype = payload.get("type")

    if subtype == "user_message":
        images = _string_items(payload.get("images")) + _string_items(payload.get("local_images"))
        return [UserMessageEvent(ts=ts, text=_as_str(payload.get("message")), images=images)]

    if subtype == "agent_message":
        return [AgentMessageEvent(ts=ts, text=_as_str(payload.get("message")))]

    if subtype == "agent_reasoning":
        return [ReasoningEvent(ts=ts, text=_as_str(payload.get("text")))]

    if subtype == "token_count":
        info = _as_dict(payload.get("info"))
        total = _as_dict(info.get("total_token_usage"))
        last = _as_dict(info.get("last_token_usage"))
        return [
            TokenUsageEvent(
                ts=ts,
                total_input=_as_int(total.get("input_tokens")),
                cached_input=_as_int(total.get("cached_input_tokens")),
                total_output=_as_int(total.get("output_tokens")),
                reasoning_output=_as_int(total.get("reasoning_output_tokens")),
                total_tokens=_as_int(total.get("total_tokens")),
                context_window=_as_int(info.get("model_context_window")),
                last_input=_as_int(last.get("input_tokens")),
                last_output=_as_int(last.get("output_tokens")),
            )
        ]

    return []


# ── response_item ───────────────────────────────────────────────────

def _content_blocks(payload: dict[str, Any]) -> list[dict[str, Any]]:
    content = payload.get("content")
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


def _parse_user_response(payload: dict[str, Any], ts: str) -> list[Event]:
    text_parts: list[str] = []
    images: list[str] = []
    for block in _content_blocks(payload):
        block_type = block.get("type")
        if block_type == "input_text":
            text_parts.append(_as_str(block.get("text")))
        elif block_type == "input_image" and _as_str(block.get("image_url")):
            images.append(block["image_url"])
    # Text-only copies are covered by the matching event_msg.
    if not images:
        return []
    return [UserMessageEvent(ts=ts, text="\n".join(text_parts), images=images)]


def _parse_assistant_response(payload: dict[str, Any], ts: str) -> list[Event]:
    text = "\n".join(
        _as_str(block.get("text")) for block in _content_blocks(payload) if block.get("type") == "output_text"
    )
    if not text:
        return []
    return [AgentMessageEvent(ts=ts, text=text, phase=_as_str(payload.get("phase")) or "final")]


def _parse_apply_patch_call(payload: dict[str, Any], ts: str) -> list[Event]:
    if payload.get("type") == "custom_tool_call":
        patch = _as_str(payload.get("input"))
    else:
        raw_arguments = payload.get("arguments")
        arguments = _load_arguments(raw_arguments)
        if arguments is None:
            patch = _as_str(raw_arguments)
        else:
            patch = _as_str(arguments.get("patch")) or _as_str(arguments.get("content")) or _as_str(raw_arguments)
    return [FileChangeEvent(ts=ts, patch=patch, files=extract_patch_files(patch), callId=_call_id(payload))]


def _parse_exec_command(payload: dict[str, Any], ts: str) -> list[Event]:
    raw_arguments = payload.get("arguments")
    arguments = _load_arguments(raw_arguments)
    if arguments is None:
        cmd = _as_str(raw_arguments)
        workdir = ""
    else:
        cmd = _as_str(arguments.get("cmd"))
        workdir = _as_str(arguments.get("workdir"))

    call_id = _call_id(payload)
    file_write = heredoc_to_file_change(cmd, ts, call_id)
    if file_write is not None:
        return [file_write]
    return [ShellCommandEvent(ts=ts, cmd=cmd, workdir=workdir, callId=call_id)]


def _parse_custom_tool_output(payload: dict[str, Any], ts: str) -> list[Event]:
    raw_output = payload.get("output")
    output = _as_str(raw_output)
    if isinstance(raw_output, str):
        try:
            unwrapped = json.loads(raw_output)
        except json.JSONDecodeError:
            unwrapped = None
        if isinstance(unwrapped, dict) and _as_str(unwrapped.get("output")):
            output = unwrapped["output"]
    return [ToolOutputEvent(ts=ts, output=output, callId=_call_id(payload))]


def _parse_response_item(payload: dict[str, Any], ts: str) -> list[Event]:
    subtype = payload.get("type")
    name = payload.get("name")

    if subtype == "message":
        role = payload.get("role")
        if role == "user":
            return _parse_user_response(payload, ts)
        if role == "assistant":
            return _parse_assistant_response(payload, ts)
        return []

    if subtype in ("custom_tool_call", "function_call") and name == "apply_patch":
        return _parse_apply_patch_call(payload, ts)

    if subtype == "function_call" and name == "exec_command":
        return _parse_exec_command(payload, ts)

    if subtype == "custom_tool_call_output":
        return _parse_custom_tool_output(payload, ts)

    if subtype == "function_call_output":
        return [ToolOutputEvent(ts=ts, output=_as_str(payload.get("output")), callId=_call_id(payload))]

    return []


def parse_event(record: dict[str, Any]) -> list[Event]:
    """Map one decoded Codex record to zero or more events."""
    ts = _as_str(record.get("timestamp"))
    record_type = record.get("type")
    payload = _as_dict(record.get("payload"))

    if record_type == "session_meta":
        return [
            SessionStartEvent(
                ts=ts,
                id=_as_str(payload.get("id")),
                cwd=_as_str(payload.get("cwd")),
                model=_as_str(payload.get("model_provider")),
                source="codex",
            )
        ]

    if record_type == "event_msg":
        return _parse_event_msg(payload, ts)

    if record_type == "response_item":
        return _parse_response_item(payload, ts)

    return []
