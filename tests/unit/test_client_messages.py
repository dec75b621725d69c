# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from protocol.messages import (
    AudioAppendMessage,
    ConfigMessage,
    FlushMessage,
    InvalidMessage,
    MalformedMessage,
    PingMessage,
    UnknownMessageType,
    parse_client_message,
    pong_message,
    status_message,
    transcript_message,
)


def test_parses_each_client_message_type() -> None:
    assert parse_client_message('{"type":"config","language":"fr"}') == ConfigMessage("fr")
    assert parse_client_message('{"type":"client.audio.append","audio":"AAAA"}') == (
        AudioAppendMessage("AAAA")
    )
    assert parse_client_message('{"type":"client.flush"}') == FlushMessage()
    assert parse_client_message('{"type":"ping","t":12.5}') == PingMessage(t=12.5)


@pytest.mark.parametrize("payload", ["not json", "[1, 2]", '"config"'])
def test_malformed_payloads(payload: str) -> None:
    with pytest.raises(MalformedMessage):
        parse_client_message(payload)


def test_unknown_type_keeps_tag() -> None:
    with pytest.raises(UnknownMessageType) as excinfo:
        parse_client_message('{"type":"mic.start"}')

    assert excinfo.value.msg_type == "mic.start"


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "config"},
        {"type": "config", "language": ""},
        {"type": "client.audio.append", "audio": 123},
        {"type": "client.audio.append"},
    ],
)
def test_invalid_fields(payload: dict) -> None:
    with pytest.raises(InvalidMessage):
        parse_client_message(json.dumps(payload))


def test_outbound_builders() -> None:
    assert transcript_message("final", "hi") == {
        "type": "transcript",
        "channel": "final",
        "text": "hi",
    }
    assert status_message("provider-error") == {"type": "status", "value": "provider-error"}
    assert pong_message(5) == {"type": "pong", "t": 5}

    with pytest.raises(ValueError):
        transcript_message("partial", "hi")
