# pylint: disable=missing-module-docstring,missing-function-docstring
import pytest

from orchestrator.commands import LogEvent
from orchestrator.events import (
    ClientFlush,
    ClientPing,
    Event,
    EventType,
    ProviderConnected,
    ProviderResponseDone,
)
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import RelayState


@pytest.mark.parametrize(
    "event",
    [
        ClientFlush(event_type=EventType.CLIENT_FLUSH, ts_ms=123),
        ClientPing(event_type=EventType.CLIENT_PING, ts_ms=123, t=1),
        ProviderConnected(event_type=EventType.PROVIDER_CONNECTED, ts_ms=123),
        ProviderResponseDone(event_type=EventType.PROVIDER_RESPONSE_DONE, ts_ms=123),
    ],
)
def test_reducer_emits_logevent_with_required_fields(event: Event) -> None:
    state = RelayState(provider_connected=True)

    _, commands = reduce(state, event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event
    assert payload["ts_ms"] == 123
    assert payload["event_type"] == event.event_type.value
    assert payload["state"] == "IDLE"
    assert isinstance(payload["decision"], str)
    assert payload["buffered_b64_chars"] == 0
    assert isinstance(payload["details"], dict)


def test_reducer_does_not_mutate_input_state() -> None:
    state = RelayState(provider_connected=True, buffered_b64_chars=9000)

    reduce(state, ClientFlush(event_type=EventType.CLIENT_FLUSH, ts_ms=0))

    assert state.buffered_b64_chars == 9000
