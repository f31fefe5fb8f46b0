"""Collapse near-duplicate Codex messages.

Codex logs each user and agent message twice: once as an ``event_msg`` and
once as a ``response_item``. The two copies carry different subsets of the
data (placeholder text vs. real image payloads, streamed phase tags), so the
survivor is chosen and enriched rather than picked blindly.

Both passes work on a slot list: discarded entries are set to ``None`` and
compacted at the end, so survivors keep their relative order. Events are
frozen; a merged survivor is a ``model_copy`` of the original.
"""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote

from sessionview import config
from sessionview.date_utils import iso_to_epoch_ms
from sessionview.models import AgentMessageEvent, Event, UserMessageEvent

USER_WINDOW_MS = 3000
AGENT_SCAN_WINDOW_MS = 5000
AGENT_MATCH_WINDOW_MS = 2000
AGENT_COMPARE_CHARS = 200
AGENT_PREFIX_CHARS = 80

_IMAGE_PLACEHOLDER_MARKER = "<image name="
_IMAGE_PLACEHOLDER_PATTERN = re.compile(r"<image name=[^>]*>\s*</image>\s*")
# Characters encodeURIComponent leaves alone besides alphanumerics and "_.-~".
_URI_COMPONENT_SAFE = "!*'()"


def _gap_ms(a: Event, b: Event) -> float | None:
    """Absolute distance between two events; None when either has no usable ts."""
    ta = iso_to_epoch_ms(a.ts)
    tb = iso_to_epoch_ms(b.ts)
    if ta is None or tb is None:
        return None
    return abs(ta - tb)


def _has_data_uri_images(images: list[str]) -> bool:
    return bool(images) and images[0].startswith("data:")


def _compact(slots: list[Optional[Event]]) -> list[Event]:
    return [event for event in slots if event is not None]


# ── user messages ───────────────────────────────────────────────────

def _merge_images(keep: UserMessageEvent, remove: UserMessageEvent) -> UserMessageEvent:
    keep_images = keep.images
    remove_images = remove.images
    if _has_data_uri_images(remove_images) and not _has_data_uri_images(keep_images):
        return keep.model_copy(update={"images": list(remove_images)})
    if len(remove_images) > len(keep_images) and not _has_data_uri_images(keep_images):
        return keep.model_copy(update={"images": list(remove_images)})
    return keep


def _proxy_image(image: str, prefix: str) -> str:
    if image.startswith("/") and not image.startswith(prefix):
        return prefix + quote(image, safe=_URI_COMPONENT_SAFE)
    return image


def _normalize_user_message(event: UserMessageEvent, prefix: str) -> UserMessageEvent:
    text = _IMAGE_PLACEHOLDER_PATTERN.sub("", event.text).strip() if event.text else event.text
    images = [_proxy_image(image, prefix) for image in event.images]
    if text == event.text and images == event.images:
        return event
    return event.model_copy(update={"text": text, "images": images})


def deduplicate_user_messages(events: list[Event], *, image_proxy_prefix: str | None = None) -> list[Event]:
    """Keep one user message per pair logged within ``USER_WINDOW_MS``.

    The copy without ``<image name=...>`` placeholder text wins; otherwise the
    earlier one. Images are merged into the survivor, placeholder text is
    stripped and local image paths are rewritten to the image proxy.
    """
    prefix = config.IMAGE_PROXY_PREFIX if image_proxy_prefix is None else image_proxy_prefix
    slots: list[Optional[Event]] = list(events)

    for i in range(len(slots)):
        if not isinstance(slots[i], UserMessageEvent):
            continue
        for j in range(i + 1, len(slots)):
            current = slots[i]
            candidate = slots[j]
            if not isinstance(candidate, UserMessageEvent):
                continue
            gap = _gap_ms(current, candidate)
            if gap is None or gap > USER_WINDOW_MS:
                break

            i_has_placeholder = _IMAGE_PLACEHOLDER_MARKER in current.text
            j_has_placeholder = _IMAGE_PLACEHOLDER_MARKER in candidate.text
            if i_has_placeholder and not j_has_placeholder:
                keep_idx, remove_idx = j, i
            else:
                keep_idx, remove_idx = i, j

            slots[keep_idx] = _merge_images(slots[keep_idx], slots[remove_idx])
            slots[remove_idx] = None
            if remove_idx == i:
                break

    result: list[Event] = []
    for event in _compact(slots):
        if isinstance(event, UserMessageEvent):
            event = _normalize_user_message(event, prefix)
        result.append(event)
    return result


# ── agent messages ──────────────────────────────────────────────────

def _similar_text(a: str, b: str) -> bool:
    head_a = a[:AGENT_COMPARE_CHARS]
    head_b = b[:AGENT_COMPARE_CHARS]
    return (
        head_a == head_b
        or head_a.startswith(head_b[:AGENT_PREFIX_CHARS])
        or head_b.startswith(head_a[:AGENT_PREFIX_CHARS])
    )


def _has_streaming_phase(event: AgentMessageEvent) -> bool:
    return bool(event.phase) and event.phase != "final"


def deduplicate_agent_messages(events: list[Event]) -> list[Event]:
    """Drop the weaker of two matching agent messages logged within 2s.

    A copy tagged with a non-``final`` phase beats one without; otherwise the
    longer text wins (the later copy on ties).
    """
    slots: list[Optional[Event]] = list(events)

    for i in range(len(slots)):
        current = slots[i]
        if not isinstance(current, AgentMessageEvent):
            continue
        for j in range(i + 1, len(slots)):
            candidate = slots[j]
            if candidate is None:
                continue
            gap = _gap_ms(current, candidate)
            if gap is None or gap > AGENT_SCAN_WINDOW_MS:
                break
            if not isinstance(candidate, AgentMessageEvent):
                continue
            if gap > AGENT_MATCH_WINDOW_MS:
                continue
            if not _similar_text(current.text, candidate.text):
                continue

            i_phase = _has_streaming_phase(current)
            j_phase = _has_streaming_phase(candidate)
            if j_phase and not i_phase:
                remove_idx = i
            elif i_phase and not j_phase:
                remove_idx = j
            elif len(candidate.text) >= len(current.text):
                remove_idx = i
            else:
                remove_idx = j

            slots[remove_idx] = None
            if remove_idx == i:
                break

    return _compact(slots)


def deduplicate_codex_events(events: list[Event], *, image_proxy_prefix: str | None = None) -> list[Event]:
    """Run both passes in order: user messages first, then agent messages."""
    deduped = deduplicate_user_messages(events, image_proxy_prefix=image_proxy_prefix)
    return deduplicate_agent_messages(deduped)
