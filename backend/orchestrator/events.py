"""
Unified event definitions for the relay reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Client messages
    # ------------------------------------------------------------------
    CLIENT_CONFIG = "CLIENT_CONFIG"
    CLIENT_AUDIO_APPEND = "CLIENT_AUDIO_APPEND"
    CLIENT_FLUSH = "CLIENT_FLUSH"
    CLIENT_PING = "CLIENT_PING"
    CLIENT_DISCONNECTED = "CLIENT_DISCONNECTED"

    # ------------------------------------------------------------------
    # Provider (already normalized)
    # ------------------------------------------------------------------
    PROVIDER_CONNECTED = "PROVIDER_CONNECTED"
    PROVIDER_TRANSCRIPT = "PROVIDER_TRANSCRIPT"
    PROVIDER_RESPONSE_STARTED = "PROVIDER_RESPONSE_STARTED"
    PROVIDER_RESPONSE_DONE = "PROVIDER_RESPONSE_DONE"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_DISCONNECTED = "PROVIDER_DISCONNECTED"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    RESPONSE_TIMEOUT = "RESPONSE_TIMEOUT"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Client Events
# =============================================================================

@dataclass(frozen=True)
class ClientConfig(Event):
    """Client selected a transcription language."""
    language: str


@dataclass(frozen=True)
class ClientAudioAppend(Event):
    """
    One encoded audio chunk from the client.

    audio is the base64 text exactly as received; its length feeds the
    buffered-audio estimate.
    """
    audio: str


@dataclass(frozen=True)
class ClientFlush(Event):
    """Client asked the relay to evaluate a commit."""


@dataclass(frozen=True)
class ClientPing(Event):
    """Latency probe; t is echoed back untouched."""
    t: Any = None


@dataclass(frozen=True)
class ClientDisconnected(Event):
    reason: str | None = None


# =============================================================================
# Provider Events
# =============================================================================

@dataclass(frozen=True)
class ProviderConnected(Event):
    """Upstream socket is open and ready for instructions."""


@dataclass(frozen=True)
class ProviderTranscript(Event):
    """
    Normalized transcript fragment.

    channel is "interim" or "final". Final text is already trimmed.
    """
    channel: str
    text: str


@dataclass(frozen=True)
class ProviderResponseStarted(Event):
    """Provider acknowledged a response (response.created)."""


@dataclass(frozen=True)
class ProviderResponseDone(Event):
    """Provider completed a response (response.done)."""


@dataclass(frozen=True)
class ProviderError(Event):
    """
    Provider-side failure.

    transport=False:
        The provider reported an error event. Logged only.

    transport=True:
        The upstream socket failed (connect/send/receive). The client is
        told via a status message; a ProviderDisconnected follows.
    """
    reason: str
    transport: bool = False
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProviderDisconnected(Event):
    reason: str | None = None


# =============================================================================
# Timer Events
# =============================================================================

@dataclass(frozen=True)
class ResponseTimeout(Event):
    """An in-flight response outlived the configured bound."""
