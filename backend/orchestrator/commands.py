"""
Side-effect command definitions for the relay.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.events import EventType

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Provider
    SEND_PROVIDER = "SEND_PROVIDER"

    # Client / transport
    SEND_TO_CLIENT = "SEND_TO_CLIENT"
    CLOSE_SESSION = "CLOSE_SESSION"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Observability
    LOG_EVENT = "LOG_EVENT"
    START_METRIC = "START_METRIC"
    STOP_METRIC = "STOP_METRIC"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Provider Commands
# =============================================================================

@dataclass(frozen=True)
class SendProvider(Command):
    """
    Send one instruction upstream (fire-and-forget).

    payload is a JSON-ready dict from protocol.provider.
    """
    payload: dict[str, Any]
    command_type: CommandType = CommandType.SEND_PROVIDER


# =============================================================================
# Client Commands
# =============================================================================

@dataclass(frozen=True)
class SendToClient(Command):
    """Queue one relay -> client message."""
    message: dict[str, Any]
    command_type: CommandType = CommandType.SEND_TO_CLIENT


@dataclass(frozen=True)
class CloseSession(Command):
    """Close both sides of the connection pair."""
    reason: str | None = None
    command_type: CommandType = CommandType.CLOSE_SESSION


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Request to start a named timer.

    On expiration, the runtime must inject the specified timeout event.
    """
    timer_id: str
    duration_ms: int
    timeout_event_type: EventType
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Request to cancel a previously scheduled timer."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT


@dataclass(frozen=True)
class StartMetric(Command):
    """Start a named latency measurement."""
    metric: str
    command_type: CommandType = CommandType.START_METRIC


@dataclass(frozen=True)
class StopMetric(Command):
    """
    Stop a named latency measurement.

    discard=True drops it without emitting (e.g. forced timeout reset).
    """
    metric: str
    discard: bool = False
    command_type: CommandType = CommandType.STOP_METRIC
