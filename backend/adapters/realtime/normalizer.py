"""
Provider event normalization.

The realtime provider has shipped several overlapping shapes for "a piece of
text became available" and "a piece of text is finished". This module
collapses all of them into one tagged result so nothing downstream tracks
provider versions:

    INTERIM          provisional text (not trimmed)
    FINAL            finished text (whitespace-trimmed, never empty)
    LIFECYCLE_START  response.created
    LIFECYCLE_END    response.done
    ERROR            error / response.error (never forwarded as text)
    IGNORED          anything else, including text events with no text

Pure functions only: no IO, no clocks, no state.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping


class NormalizedKind(str, Enum):
    INTERIM = "interim"
    FINAL = "final"
    LIFECYCLE_START = "lifecycle_start"
    LIFECYCLE_END = "lifecycle_end"
    ERROR = "error"
    IGNORED = "ignored"


@dataclass(frozen=True)
class NormalizedEvent:
    """
    Result of normalizing one provider event.

    provider_type:
        The raw "type" tag, kept for logging.

    ends_batch:
        True when the remaining lines of the current inbound message must
        not be processed (content_part.done and error events).

    error:
        The raw provider payload for ERROR results, empty otherwise.
    """
    kind: NormalizedKind
    provider_type: str | None
    text: str = ""
    ends_batch: bool = False
    error: Mapping[str, Any] = field(default_factory=dict)


# Delta events carrying their text in "delta"
_DELTA_TYPES = frozenset({
    "response.audio_transcript.delta",
    "response.text.delta",
    "response.output_text.delta",
})

# Done events carrying their text in "text"
_DONE_TYPES = frozenset({
    "response.audio_transcript.done",
    "response.text.done",
    "response.output_text.done",
})

_ERROR_TYPES = frozenset({"error", "response.error"})


def _text(value: Any) -> str:
    # Falsy values (missing, None, 0, "") carry no text
    return str(value) if value else ""


def _part_text(part: Any) -> str:
    if not isinstance(part, Mapping):
        return ""
    for key in ("text", "content", "transcript"):
        value = part.get(key)
        if isinstance(value, str):
            return value
    return ""


def _interim(provider_type: str, text: str) -> NormalizedEvent:
    if not text:
        return NormalizedEvent(kind=NormalizedKind.IGNORED, provider_type=provider_type)
    return NormalizedEvent(kind=NormalizedKind.INTERIM, provider_type=provider_type, text=text)


def _final(provider_type: str, text: str, *, ends_batch: bool = False) -> NormalizedEvent:
    text = text.strip()
    if not text:
        return NormalizedEvent(
            kind=NormalizedKind.IGNORED,
            provider_type=provider_type,
            ends_batch=ends_batch,
        )
    return NormalizedEvent(
        kind=NormalizedKind.FINAL,
        provider_type=provider_type,
        text=text,
        ends_batch=ends_batch,
    )


def normalize_event(data: Mapping[str, Any]) -> NormalizedEvent:
    """Map one parsed provider event onto the normalized vocabulary."""
    provider_type = data.get("type")
    if not isinstance(provider_type, str):
        return NormalizedEvent(kind=NormalizedKind.IGNORED, provider_type=None)

    if provider_type == "response.created":
        return NormalizedEvent(kind=NormalizedKind.LIFECYCLE_START, provider_type=provider_type)

    if provider_type == "response.done":
        return NormalizedEvent(kind=NormalizedKind.LIFECYCLE_END, provider_type=provider_type)

    if provider_type in _ERROR_TYPES:
        return NormalizedEvent(
            kind=NormalizedKind.ERROR,
            provider_type=provider_type,
            ends_batch=True,
            error=dict(data),
        )

    if provider_type == "response.content_part.added":
        return _interim(provider_type, _part_text(data.get("part")))

    if provider_type == "response.content_part.done":
        return _final(provider_type, _part_text(data.get("part")), ends_batch=True)

    if provider_type in _DELTA_TYPES:
        return _interim(provider_type, _text(data.get("delta")))

    if provider_type == "response.delta":
        delta = data.get("delta")
        if isinstance(delta, Mapping) and delta.get("type") == "output_text.delta":
            return _interim(provider_type, _text(delta.get("text")))
        return NormalizedEvent(kind=NormalizedKind.IGNORED, provider_type=provider_type)

    if provider_type in _DONE_TYPES:
        return _final(provider_type, _text(data.get("text")))

    if provider_type == "response.completed":
        response = data.get("response")
        items = response.get("output_text") if isinstance(response, Mapping) else None
        if isinstance(items, list) and items:
            joined = " ".join(
                _text(item.get("content")) if isinstance(item, Mapping) else ""
                for item in items
            )
            return _final(provider_type, joined)
        return NormalizedEvent(kind=NormalizedKind.IGNORED, provider_type=provider_type)

    return NormalizedEvent(kind=NormalizedKind.IGNORED, provider_type=provider_type)


def iter_event_lines(raw: str | bytes) -> Iterator[Mapping[str, Any]]:
    """
    Yield parsed events from one inbound provider message.

    The message may hold several newline-delimited JSON events. Blank lines
    and lines holding a JSON value other than an object are skipped. A line
    that fails to parse, or parses to null, ends iteration: the rest of that
    message is dropped, the connection is unaffected.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    for line in text.split("\n"):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            return
        if data is None:
            return
        if not isinstance(data, dict):
            continue
        yield data


def normalize_message(raw: str | bytes) -> list[NormalizedEvent]:
    """
    Normalize every event in one inbound provider message, in order.

    Stops after an event flagged ends_batch.
    """
    out: list[NormalizedEvent] = []
    for data in iter_event_lines(raw):
        event = normalize_event(data)
        out.append(event)
        if event.ends_batch:
            break
    return out
