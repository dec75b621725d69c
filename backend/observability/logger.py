"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging

With JSON output disabled (ENABLE_JSON_LOGS=0) the same event is rendered
as a single `event_type key=value ...` line for local reading.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_json_enabled: bool = True


def configure(*, enable_json: bool) -> None:
    """Select JSONL (default) or plain key=value rendering."""
    global _json_enabled  # pylint: disable=global-statement
    _json_enabled = enable_json


def _render_plain(event: Mapping[str, Any]) -> str:
    head = str(event.get("event_type", "EVENT"))
    parts = [
        f"{key}={json.dumps(value, ensure_ascii=False, default=repr)}"
        for key, value in event.items()
        if key != "event_type"
    ]
    return " ".join([head, *parts])


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single log event to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, state, etc.

    This function:
    - Serializes to JSON (or key=value when JSON is disabled)
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    try:
        if _json_enabled:
            line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
        else:
            line = _render_plain(event)
    except (TypeError, ValueError) as e:
        # Last-resort fallback: logging must never crash the relay
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
