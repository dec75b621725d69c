"""
Relay -> provider instruction builders (OpenAI Realtime vocabulary).

Pure functions returning JSON-ready dicts. The adapter serializes them.
"""

from __future__ import annotations

from typing import Any

from spec import RESPONSE_INSTRUCTIONS, RESPONSE_MODALITIES


def session_update(*, language: str, transcription_model: str) -> dict[str, Any]:
    """Session configuration carrying the current transcription language."""
    return {
        "type": "session.update",
        "session": {
            "input_audio_format": "pcm16",
            "input_audio_transcription": {
                "model": transcription_model,
                "language": language,
            },
        },
    }


def input_audio_append(audio_b64: str) -> dict[str, Any]:
    return {"type": "input_audio_buffer.append", "audio": audio_b64}


def input_audio_commit() -> dict[str, Any]:
    return {"type": "input_audio_buffer.commit"}


def response_create() -> dict[str, Any]:
    """
    Request one text-only transcription pass.

    conversation="none" keeps every flush isolated from prior exchanges.
    """
    return {
        "type": "response.create",
        "response": {
            "modalities": list(RESPONSE_MODALITIES),
            "conversation": "none",
            "instructions": RESPONSE_INSTRUCTIONS,
        },
    }
