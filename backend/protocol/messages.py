"""
Client <-> relay JSON message vocabulary.

Client -> Relay (tagged by "type"):
    config               {"language": <code>}
    client.audio.append  {"audio": <base64 PCM16>}
    client.flush         {}
    ping                 {"t": <client timestamp>}

Relay -> Client:
    transcript  {"channel": "interim" | "final", "text": <str>}
    status      {"value": "provider-error"}
    pong        {"t": <echoed timestamp>}

Usage example:

    try:
        msg = parse_client_message(payload)
    except ProtocolError as e:
        log_event({"event_type": "INVALID_MESSAGE", "error": str(e)})
        return

    if isinstance(msg, PingMessage):
        send(pong_message(msg.t))
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from spec import (
    CHANNEL_FINAL,
    CHANNEL_INTERIM,
    MSG_AUDIO_APPEND,
    MSG_CONFIG,
    MSG_FLUSH,
    MSG_PING,
    MSG_PONG,
    MSG_STATUS,
    MSG_TRANSCRIPT,
)


# -------------------------
# Exceptions
# -------------------------

class ProtocolError(Exception):
    """Base class for client message errors."""


class MalformedMessage(ProtocolError):
    """Payload is not a JSON object."""


class InvalidMessage(ProtocolError):
    """Known type, but a required field is missing or has the wrong type."""


class UnknownMessageType(ProtocolError):
    """The "type" tag is missing or not part of the vocabulary."""

    def __init__(self, msg_type: Any) -> None:
        super().__init__(f"Unknown message type: {msg_type!r}")
        self.msg_type = msg_type


# -------------------------
# Client -> Relay
# -------------------------

@dataclass(frozen=True)
class ConfigMessage:
    language: str


@dataclass(frozen=True)
class AudioAppendMessage:
    audio: str


@dataclass(frozen=True)
class FlushMessage:
    pass


@dataclass(frozen=True)
class PingMessage:
    t: Any = None


ClientMessage = Union[ConfigMessage, AudioAppendMessage, FlushMessage, PingMessage]


def parse_client_message(payload: str | bytes) -> ClientMessage:
    """
    Decode one client text frame.

    Raises:
        MalformedMessage, InvalidMessage, UnknownMessageType
    """
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedMessage(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMessage(f"Expected JSON object, got {type(data).__name__}")

    msg_type = data.get("type")

    if msg_type == MSG_CONFIG:
        language = data.get("language")
        if not isinstance(language, str) or not language:
            raise InvalidMessage("config requires a non-empty language")
        return ConfigMessage(language=language)

    if msg_type == MSG_AUDIO_APPEND:
        audio = data.get("audio")
        if not isinstance(audio, str):
            raise InvalidMessage("client.audio.append requires string audio")
        return AudioAppendMessage(audio=audio)

    if msg_type == MSG_FLUSH:
        return FlushMessage()

    if msg_type == MSG_PING:
        return PingMessage(t=data.get("t"))

    raise UnknownMessageType(msg_type)


def config_message(language: str) -> dict[str, Any]:
    return {"type": MSG_CONFIG, "language": language}


def audio_append_message(audio_b64: str) -> dict[str, Any]:
    return {"type": MSG_AUDIO_APPEND, "audio": audio_b64}


def flush_message() -> dict[str, Any]:
    return {"type": MSG_FLUSH}


def ping_message(t: Any) -> dict[str, Any]:
    return {"type": MSG_PING, "t": t}


# -------------------------
# Relay -> Client
# -------------------------

def transcript_message(channel: str, text: str) -> dict[str, Any]:
    if channel not in (CHANNEL_INTERIM, CHANNEL_FINAL):
        raise ValueError(f"Invalid transcript channel: {channel!r}")
    return {"type": MSG_TRANSCRIPT, "channel": channel, "text": text}


def status_message(value: str) -> dict[str, Any]:
    return {"type": MSG_STATUS, "value": value}


def pong_message(t: Any) -> dict[str, Any]:
    return {"type": MSG_PONG, "t": t}
