"""Render a parsed session as a compact markdown hand-off document."""
from __future__ import annotations

import re

from sessionview.date_utils import format_short_date
from sessionview.models import Event, FileChangeEvent, SessionStartEvent, ShellCommandEvent, UserMessageEvent

_HOME_PREFIX_PATTERN = re.compile(r"^/(?:Users|home)/[^/]+")
_NEWLINES_PATTERN = re.compile(r"\n+")

REQUEST_PREVIEW_CHARS = 300
LAST_REQUEST_CHARS = 400
PATCH_PREVIEW_LINES = 150


def _shorten_home(path: str) -> str:
    return _HOME_PREFIX_PATTERN.sub("~", path)


def _header(events: list[Event]) -> list[str]:
    start = next((e for e in events if isinstance(e, SessionStartEvent)), None)
    cwd_short = _shorten_home(start.cwd if start else "")
    model = start.model if start else ""
    first_ts = next((e.ts for e in events if e.ts), "")

    project_name = cwd_short.split("/")[-1] or cwd_short or "session"
    lines = [f"# Session Context: {project_name}", ""]
    if cwd_short:
        lines.append(f"**Directory:** {cwd_short}")
    lines.append(f"**Date:** {format_short_date(first_ts)}")
    if model:
        lines.append(f"**Model:** {model}")
    lines.append("")
    return lines


def _requests(messages: list[UserMessageEvent]) -> list[str]:
    lines = ["## Requests", ""]
    for idx, message in enumerate(messages, start=1):
        text = _NEWLINES_PATTERN.sub(" ", message.text.strip())
        if len(text) > REQUEST_PREVIEW_CHARS:
            text = text[:REQUEST_PREVIEW_CHARS] + "…"
        lines.append(f"{idx}. {text}")
    lines.append("")
    return lines


def _file_changes(changes: list[FileChangeEvent]) -> list[str]:
    summary: dict[str, dict[str, object]] = {}
    for change in changes:
        for info in change.files:
            entry = summary.setdefault(info.path, {"action": info.action, "count": 0})
            entry["count"] = int(entry["count"]) + 1
            entry["action"] = info.action

    lines = ["## Files changed", ""]
    for file_path, entry in summary.items():
        count = int(entry["count"])
        times = f" ({count} patches)" if count > 1 else ""
        lines.append(f"- `{file_path}` — {entry['action']}{times}")
    lines.append("")

    lines.extend(["## Patches", ""])
    for change in changes:
        if not change.patch.strip():
            continue
        label = ", ".join(f"{info.path} ({info.action})" for info in change.files)
        lines.append(f"### {label}")
        lines.append("```diff")
        patch_lines = change.patch.split("\n")
        if len(patch_lines) > PATCH_PREVIEW_LINES:
            lines.extend(patch_lines[:PATCH_PREVIEW_LINES])
            lines.append(f"... [{len(patch_lines) - PATCH_PREVIEW_LINES} more lines truncated]")
        else:
            lines.extend(patch_lines)
        lines.extend(["```", ""])
    return lines


def _commands(commands: list[ShellCommandEvent]) -> list[str]:
    lines = ["## Commands run", ""]
    for command in commands:
        where = f" # in {_shorten_home(command.workdir)}" if command.workdir else ""
        lines.append(f"- `{command.cmd}`{where}")
    lines.append("")
    return lines


def to_compact_markdown(events: list[Event]) -> str:
    """Summarize requests, file changes and commands for continuing elsewhere."""
    user_messages = [e for e in events if isinstance(e, UserMessageEvent)]
    file_changes = [e for e in events if isinstance(e, FileChangeEvent)]
    shell_commands = [e for e in events if isinstance(e, ShellCommandEvent)]

    lines = _header(events)
    if user_messages:
        lines.extend(_requests(user_messages))
    if file_changes:
        lines.extend(_file_changes(file_changes))
    if shell_commands:
        lines.extend(_commands(shell_commands))
    if user_messages:
        last_text = user_messages[-1].text.strip()[:LAST_REQUEST_CHARS]
        lines.extend(["## Continue from here", "", f'> Last request: "{last_text}"', ""])
    return "\n".join(lines)
