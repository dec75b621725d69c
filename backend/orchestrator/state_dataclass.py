"""
Authoritative per-connection relay state.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
- Created at connection open, discarded at connection close.
"""
from __future__ import annotations

from dataclasses import dataclass

from orchestrator.enums.state import State
from spec import (
    DEFAULT_LANGUAGE,
    DEFAULT_TRANSCRIPTION_MODEL,
    RESPONSE_TIMEOUT_MS_DEFAULT,
)


@dataclass(frozen=True)
class RelayState:
    """Immutable snapshot of all relay-owned state for one connection."""

    # Gate: RESPONSE_IN_FLIGHT iff a transcription request is outstanding
    state: State = State.IDLE

    # Sum of base64 lengths appended since the last commit that started a
    # response. Never negative; only reset together with response.create.
    buffered_b64_chars: int = 0

    # Session language; pushed upstream on change and on provider connect
    language: str = DEFAULT_LANGUAGE
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL

    # 0 disables the stuck-response guard
    response_timeout_ms: int = RESPONSE_TIMEOUT_MS_DEFAULT

    provider_connected: bool = False
    closed: bool = False

    # Observability counters
    commits_sent: int = 0
    responses_requested: int = 0
