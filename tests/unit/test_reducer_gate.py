# pylint: disable=missing-module-docstring,missing-function-docstring
from dataclasses import replace

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
    EventType,
    ProviderConnected,
    ProviderDisconnected,
    ProviderError,
    ProviderResponseDone,
    ProviderResponseStarted,
    ProviderTranscript,
    ResponseTimeout,
)
from orchestrator.reducer import TIMER_RESPONSE, reduce
from orchestrator.state_dataclass import RelayState
from spec import MIN_B64_CHARS_FOR_COMMIT


# ---------------------------------------------------------------------
# Event helpers (mirror gateway construction)
# ---------------------------------------------------------------------

def append(n_chars: int) -> ClientAudioAppend:
    return ClientAudioAppend(
        event_type=EventType.CLIENT_AUDIO_APPEND, ts_ms=0, audio="A" * n_chars
    )


def flush() -> ClientFlush:
    return ClientFlush(event_type=EventType.CLIENT_FLUSH, ts_ms=0)


def response_started() -> ProviderResponseStarted:
    return ProviderResponseStarted(event_type=EventType.PROVIDER_RESPONSE_STARTED, ts_ms=0)


def response_done() -> ProviderResponseDone:
    return ProviderResponseDone(event_type=EventType.PROVIDER_RESPONSE_DONE, ts_ms=0)


def connected_state(**kwargs) -> RelayState:
    return RelayState(provider_connected=True, **kwargs)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def provider_types(commands: tuple[Command, ...]) -> list[str]:
    return [c.payload["type"] for c in commands if isinstance(c, SendProvider)]


def decisions(commands: tuple[Command, ...]) -> list[str]:
    return [c.event["decision"] for c in commands if isinstance(c, LogEvent)]


# ---------------------------------------------------------------------
# Buffer tracking
# ---------------------------------------------------------------------

def test_append_adds_encoded_length_and_forwards_immediately() -> None:
    state = connected_state()

    state, commands = reduce(state, append(100))
    state, commands = reduce(state, append(50))

    assert state.buffered_b64_chars == 150
    assert provider_types(commands) == ["input_audio_buffer.append"]
    assert commands[0].payload["audio"] == "A" * 50


def test_append_before_provider_connected_is_ignored() -> None:
    state = RelayState()

    new_state, commands = reduce(state, append(100))

    assert new_state == state
    assert provider_types(commands) == []
    assert "ignore" in decisions(commands)


# ---------------------------------------------------------------------
# Commit / response gate
# ---------------------------------------------------------------------

def test_flush_below_threshold_is_a_logged_noop() -> None:
    state = connected_state(buffered_b64_chars=MIN_B64_CHARS_FOR_COMMIT - 1)

    new_state, commands = reduce(state, flush())

    assert new_state == state
    assert provider_types(commands) == []
    assert decisions(commands) == ["flush_skipped_insufficient_audio"]


def test_flush_at_threshold_when_idle_commits_and_requests() -> None:
    state = connected_state(buffered_b64_chars=MIN_B64_CHARS_FOR_COMMIT)

    new_state, commands = reduce(state, flush())

    assert provider_types(commands) == [
        "input_audio_buffer.commit",
        "response.create",
    ]
    assert new_state.state is State.RESPONSE_IN_FLIGHT
    assert new_state.buffered_b64_chars == 0
    assert new_state.commits_sent == 1
    assert new_state.responses_requested == 1
    assert any(
        isinstance(c, StartTimer) and c.timer_id == TIMER_RESPONSE for c in commands
    )
    assert any(isinstance(c, StartMetric) for c in commands)


def test_response_create_is_isolated_text_only() -> None:
    state = connected_state(buffered_b64_chars=MIN_B64_CHARS_FOR_COMMIT)

    _, commands = reduce(state, flush())

    create = [c for c in commands if isinstance(c, SendProvider)][1].payload
    assert create["response"]["conversation"] == "none"
    assert create["response"]["modalities"] == ["text"]


def test_flush_while_in_flight_commits_without_second_request() -> None:
    state = connected_state(
        state=State.RESPONSE_IN_FLIGHT,
        buffered_b64_chars=MIN_B64_CHARS_FOR_COMMIT * 2,
    )

    new_state, commands = reduce(state, flush())

    assert provider_types(commands) == ["input_audio_buffer.commit"]
    assert new_state.state is State.RESPONSE_IN_FLIGHT
    # Only reset together with a new request
    assert new_state.buffered_b64_chars == MIN_B64_CHARS_FOR_COMMIT * 2


def test_at_most_one_request_across_repeated_flushes() -> None:
    state = connected_state()
    requests = 0

    for _ in range(4):
        state, _ = reduce(state, append(MIN_B64_CHARS_FOR_COMMIT))
        state, commands = reduce(state, flush())
        requests += provider_types(commands).count("response.create")

    assert requests == 1

    state, _ = reduce(state, response_done())
    assert state.state is State.IDLE

    state, commands = reduce(state, flush())
    assert provider_types(commands) == ["input_audio_buffer.commit", "response.create"]


def test_response_done_returns_to_idle_and_stops_timer() -> None:
    state = connected_state(state=State.RESPONSE_IN_FLIGHT)

    new_state, commands = reduce(state, response_done())

    assert new_state.state is State.IDLE
    assert any(isinstance(c, CancelTimer) for c in commands)
    assert any(isinstance(c, StopMetric) and not c.discard for c in commands)


def test_response_done_while_idle_is_ignored() -> None:
    state = connected_state()

    new_state, commands = reduce(state, response_done())

    assert new_state == state
    assert "ignore" in decisions(commands)


def test_unrequested_response_start_enters_in_flight() -> None:
    state = connected_state()

    new_state, commands = reduce(state, response_started())

    assert new_state.state is State.RESPONSE_IN_FLIGHT
    assert "response_started_unrequested" in decisions(commands)

    # A flush now must not start a second request
    new_state = replace(new_state, buffered_b64_chars=MIN_B64_CHARS_FOR_COMMIT)
    _, commands = reduce(new_state, flush())
    assert "response.create" not in provider_types(commands)


def test_requested_response_start_is_acknowledged_only() -> None:
    state = connected_state(state=State.RESPONSE_IN_FLIGHT)

    new_state, commands = reduce(state, response_started())

    assert new_state == state
    assert decisions(commands) == ["response_started_ack"]


# ---------------------------------------------------------------------
# Response timeout
# ---------------------------------------------------------------------

def test_timeout_forces_idle() -> None:
    state = connected_state(state=State.RESPONSE_IN_FLIGHT)

    new_state, commands = reduce(
        state, ResponseTimeout(event_type=EventType.RESPONSE_TIMEOUT, ts_ms=0)
    )

    assert new_state.state is State.IDLE
    assert "response_timeout_forced_idle" in decisions(commands)
    assert any(isinstance(c, StopMetric) and c.discard for c in commands)


def test_stale_timeout_is_ignored() -> None:
    state = connected_state()

    new_state, commands = reduce(
        state, ResponseTimeout(event_type=EventType.RESPONSE_TIMEOUT, ts_ms=0)
    )

    assert new_state == state
    assert "ignore" in decisions(commands)


def test_zero_timeout_disables_timer() -> None:
    state = connected_state(
        buffered_b64_chars=MIN_B64_CHARS_FOR_COMMIT, response_timeout_ms=0
    )

    _, commands = reduce(state, flush())

    assert not any(isinstance(c, StartTimer) for c in commands)


# ---------------------------------------------------------------------
# Language config
# ---------------------------------------------------------------------

def test_config_before_connect_is_pushed_on_connect() -> None:
    state = RelayState(language="en")

    state, commands = reduce(
        state, ClientConfig(event_type=EventType.CLIENT_CONFIG, ts_ms=0, language="de")
    )
    assert provider_types(commands) == []

    state, commands = reduce(
        state, ProviderConnected(event_type=EventType.PROVIDER_CONNECTED, ts_ms=0)
    )
    update = [c for c in commands if isinstance(c, SendProvider)][0].payload
    assert update["type"] == "session.update"
    assert update["session"]["input_audio_format"] == "pcm16"
    assert update["session"]["input_audio_transcription"]["language"] == "de"


def test_config_after_connect_pushes_session_update() -> None:
    state = connected_state()

    new_state, commands = reduce(
        state, ClientConfig(event_type=EventType.CLIENT_CONFIG, ts_ms=0, language="es")
    )

    assert new_state.language == "es"
    assert provider_types(commands) == ["session.update"]


# ---------------------------------------------------------------------
# Client-facing messages
# ---------------------------------------------------------------------

def test_ping_echoes_t() -> None:
    _, commands = reduce(
        connected_state(), ClientPing(event_type=EventType.CLIENT_PING, ts_ms=0, t=99.5)
    )

    sent = [c.message for c in commands if isinstance(c, SendToClient)]
    assert sent == [{"type": "pong", "t": 99.5}]


def test_transcript_is_forwarded_verbatim() -> None:
    _, commands = reduce(
        connected_state(),
        ProviderTranscript(
            event_type=EventType.PROVIDER_TRANSCRIPT, ts_ms=0, channel="final", text="hi"
        ),
    )

    sent = [c.message for c in commands if isinstance(c, SendToClient)]
    assert sent == [{"type": "transcript", "channel": "final", "text": "hi"}]


def test_provider_reported_error_is_logged_not_forwarded() -> None:
    state = connected_state(state=State.RESPONSE_IN_FLIGHT)

    new_state, commands = reduce(
        state,
        ProviderError(event_type=EventType.PROVIDER_ERROR, ts_ms=0, reason="bad audio"),
    )

    assert not any(isinstance(c, SendToClient) for c in commands)
    # Only completion or timeout clears the in-flight flag
    assert new_state.state is State.RESPONSE_IN_FLIGHT


def test_transport_error_surfaces_status() -> None:
    _, commands = reduce(
        connected_state(),
        ProviderError(
            event_type=EventType.PROVIDER_ERROR, ts_ms=0, reason="reset", transport=True
        ),
    )

    sent = [c.message for c in commands if isinstance(c, SendToClient)]
    assert sent == [{"type": "status", "value": "provider-error"}]


# ---------------------------------------------------------------------
# Cascading close
# ---------------------------------------------------------------------

def test_provider_disconnect_closes_session() -> None:
    state = connected_state(state=State.RESPONSE_IN_FLIGHT)

    new_state, commands = reduce(
        state,
        ProviderDisconnected(event_type=EventType.PROVIDER_DISCONNECTED, ts_ms=0),
    )

    assert new_state.closed
    close = [c for c in commands if isinstance(c, CloseSession)]
    assert [c.reason for c in close] == ["provider_disconnected"]


def test_closed_session_only_logs() -> None:
    state, _ = reduce(
        connected_state(),
        ClientDisconnected(event_type=EventType.CLIENT_DISCONNECTED, ts_ms=0, reason="bye"),
    )

    for event in (append(10), flush(), response_started()):
        new_state, commands = reduce(state, event)
        assert new_state == state
        assert all(isinstance(c, LogEvent) for c in commands)
