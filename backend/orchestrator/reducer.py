"""
Pure relay reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).

Gate invariants:
- At most one response in flight per connection.
- A flush below MIN_B64_CHARS_FOR_COMMIT produces no commands besides a log.
- buffered_b64_chars resets to zero only when a commit is paired with a
  newly started response.
- Once closed, only logs are emitted.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from orchestrator.commands import (
    CancelTimer,
    CloseSession,
    Command,
    LogEvent,
    SendProvider,
    SendToClient,
    StartMetric,
    StartTimer,
    StopMetric,
)
from orchestrator.enums.state import State
from orchestrator.events import (
    ClientAudioAppend,
    ClientConfig,
    ClientDisconnected,
    ClientFlush,
    ClientPing,
    Event,
    EventType,
    ProviderConnected,
    ProviderDisconnected,
    ProviderError,
    ProviderResponseDone,
    ProviderResponseStarted,
    ProviderTranscript,
    ResponseTimeout,
)
from orchestrator.state_dataclass import RelayState
from protocol import provider
from protocol.messages import pong_message, status_message, transcript_message
from spec import MIN_B64_CHARS_FOR_COMMIT, STATUS_PROVIDER_ERROR


# =============================================================================
# Timer / metric IDs
# =============================================================================

TIMER_RESPONSE = "response_timeout"
METRIC_RESPONSE_LATENCY = "provider_response_latency"


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: RelayState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "buffered_b64_chars": state.buffered_b64_chars,
            "details": details or {},
        }
    )


def _state_changed(
    old: RelayState, new: RelayState, event: Event, source: str
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_state": old.state.value,
            "to_state": new.state.value,
            "source": source,
        },
    )


def _ignore(
    state: RelayState, event: Event, reason: str
) -> tuple[RelayState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _response_timer(state: RelayState) -> tuple[Command, ...]:
    if state.response_timeout_ms <= 0:
        return ()
    return (
        StartTimer(
            timer_id=TIMER_RESPONSE,
            duration_ms=state.response_timeout_ms,
            timeout_event_type=EventType.RESPONSE_TIMEOUT,
        ),
    )


def _session_update(state: RelayState) -> SendProvider:
    return SendProvider(
        payload=provider.session_update(
            language=state.language,
            transcription_model=state.transcription_model,
        )
    )


def _close(
    state: RelayState, event: Event, reason: str | None
) -> tuple[RelayState, tuple[Command, ...]]:
    new_state = replace(state, closed=True, provider_connected=False)
    return new_state, (
        CancelTimer(timer_id=TIMER_RESPONSE),
        StopMetric(metric=METRIC_RESPONSE_LATENCY, discard=True),
        CloseSession(reason=reason),
        _log(new_state, event, "session_closed", {"reason": reason}),
    )


# =============================================================================
# Flush: commit / response gate
# =============================================================================

def _on_flush(
    state: RelayState, event: ClientFlush
) -> tuple[RelayState, tuple[Command, ...]]:
    if state.buffered_b64_chars < MIN_B64_CHARS_FOR_COMMIT:
        # Committing now would be rejected upstream as a too-small buffer
        return state, (
            _log(
                state,
                event,
                "flush_skipped_insufficient_audio",
                {"min_b64_chars": MIN_B64_CHARS_FOR_COMMIT},
            ),
        )

    commit = SendProvider(payload=provider.input_audio_commit())

    if state.state is State.RESPONSE_IN_FLIGHT:
        new_state = replace(state, commits_sent=state.commits_sent + 1)
        return new_state, (
            commit,
            _log(new_state, event, "flush_commit_only_response_in_flight"),
        )

    new_state = replace(
        state,
        state=State.RESPONSE_IN_FLIGHT,
        buffered_b64_chars=0,
        commits_sent=state.commits_sent + 1,
        responses_requested=state.responses_requested + 1,
    )
    return new_state, (
        commit,
        SendProvider(payload=provider.response_create()),
        *_response_timer(new_state),
        StartMetric(metric=METRIC_RESPONSE_LATENCY),
        _log(
            new_state,
            event,
            "flush_commit_and_response",
            {"committed_b64_chars": state.buffered_b64_chars},
        ),
        _state_changed(state, new_state, event, "flush"),
    )


# =============================================================================
# Reducer
# =============================================================================

def reduce(
    state: RelayState, event: Event
) -> tuple[RelayState, tuple[Command, ...]]:
    """
    Pure reducer for one relay connection.

    Given the current relay state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects, in order
    """
    if state.closed:
        return _ignore(state, event, "session_closed")

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    if isinstance(event, ProviderConnected):
        new_state = replace(state, provider_connected=True)
        return new_state, (
            _session_update(new_state),
            _log(new_state, event, "provider_connected", {"language": state.language}),
        )

    if isinstance(event, ProviderDisconnected):
        return _close(state, event, event.reason or "provider_disconnected")

    if isinstance(event, ClientDisconnected):
        return _close(state, event, event.reason or "client_disconnected")

    # ------------------------------------------------------------------
    # Client messages
    # ------------------------------------------------------------------

    if isinstance(event, ClientConfig):
        new_state = replace(state, language=event.language)
        if not state.provider_connected:
            # Pushed on ProviderConnected instead
            return new_state, (
                _log(new_state, event, "language_stored", {"language": event.language}),
            )
        return new_state, (
            _session_update(new_state),
            _log(new_state, event, "language_updated", {"language": event.language}),
        )

    if isinstance(event, ClientAudioAppend):
        if not state.provider_connected:
            return _ignore(state, event, "provider_not_connected")
        new_state = replace(
            state,
            buffered_b64_chars=state.buffered_b64_chars + len(event.audio),
        )
        return new_state, (
            SendProvider(payload=provider.input_audio_append(event.audio)),
            _log(new_state, event, "audio_appended", {"b64_len": len(event.audio)}),
        )

    if isinstance(event, ClientFlush):
        if not state.provider_connected:
            return _ignore(state, event, "provider_not_connected")
        return _on_flush(state, event)

    if isinstance(event, ClientPing):
        return state, (
            SendToClient(message=pong_message(event.t)),
            _log(state, event, "pong_sent"),
        )

    # ------------------------------------------------------------------
    # Provider events
    # ------------------------------------------------------------------

    if isinstance(event, ProviderResponseStarted):
        if state.state is State.RESPONSE_IN_FLIGHT:
            return state, (_log(state, event, "response_started_ack"),)

        # Provider started a response we did not request
        new_state = replace(state, state=State.RESPONSE_IN_FLIGHT)
        return new_state, (
            *_response_timer(new_state),
            _log(new_state, event, "response_started_unrequested"),
            _state_changed(state, new_state, event, "provider_response_started"),
        )

    if isinstance(event, ProviderResponseDone):
        if state.state is State.IDLE:
            return _ignore(state, event, "no_response_in_flight")

        new_state = replace(state, state=State.IDLE)
        return new_state, (
            CancelTimer(timer_id=TIMER_RESPONSE),
            StopMetric(metric=METRIC_RESPONSE_LATENCY),
            _state_changed(state, new_state, event, "provider_response_done"),
        )

    if isinstance(event, ProviderTranscript):
        return state, (
            SendToClient(message=transcript_message(event.channel, event.text)),
            _log(
                state,
                event,
                "transcript_forwarded",
                {"channel": event.channel, "text_len": len(event.text)},
            ),
        )

    if isinstance(event, ProviderError):
        details: dict[str, Any] = {
            "reason": event.reason,
            "transport": event.transport,
            "payload": event.payload,
        }
        if event.transport:
            return state, (
                SendToClient(message=status_message(STATUS_PROVIDER_ERROR)),
                _log(state, event, "provider_transport_error", details),
            )
        # Provider-reported errors never reach the client as text
        return state, (_log(state, event, "provider_error_logged", details),)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    if isinstance(event, ResponseTimeout):
        if state.state is not State.RESPONSE_IN_FLIGHT:
            return _ignore(state, event, "stale_response_timeout")

        new_state = replace(state, state=State.IDLE)
        return new_state, (
            StopMetric(metric=METRIC_RESPONSE_LATENCY, discard=True),
            _log(
                new_state,
                event,
                "response_timeout_forced_idle",
                {"timeout_ms": state.response_timeout_ms},
            ),
            _state_changed(state, new_state, event, "response_timeout"),
        )

    return _ignore(state, event, "unhandled_event")
