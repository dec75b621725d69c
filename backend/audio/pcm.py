"""PCM conversion and wire encoding utilities."""

from __future__ import annotations

import base64
import math

import numpy as np
from numpy.typing import NDArray

from audio.frames import AudioFrame, EncodedAudio
from spec import (
    AUDIO_SAMPLE_WIDTH_BYTES,
    BASE64_EXPANSION_DEN,
    BASE64_EXPANSION_NUM,
    PCM16_NEGATIVE_FULL_SCALE,
    PCM16_POSITIVE_FULL_SCALE,
)


def float_to_pcm16(samples: NDArray[np.float32]) -> NDArray[np.int16]:
    """
    Quantize float samples to signed 16-bit.

    Each value is clamped to [-1, 1] first, then scaled by 0x8000 when
    negative and 0x7FFF otherwise, truncating toward zero. Length is
    preserved.
    """
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(
        clipped < 0,
        clipped * PCM16_NEGATIVE_FULL_SCALE,
        clipped * PCM16_POSITIVE_FULL_SCALE,
    )
    return np.trunc(scaled).astype(np.int16)


def pcm16_to_bytes(pcm: NDArray[np.int16]) -> bytes:
    """Serialize as little-endian PCM16 regardless of host byte order."""
    return np.asarray(pcm, dtype="<i2").tobytes()


def pcm16_to_base64(pcm: NDArray[np.int16]) -> str:
    return base64.b64encode(pcm16_to_bytes(pcm)).decode("ascii")


def base64_len_for_samples(num_samples: int) -> int:
    """Encoded character count for num_samples PCM16 samples (with padding)."""
    num_bytes = num_samples * AUDIO_SAMPLE_WIDTH_BYTES
    return BASE64_EXPANSION_NUM * math.ceil(num_bytes / BASE64_EXPANSION_DEN)


def encode_frame(frame: AudioFrame) -> EncodedAudio:
    """Quantize an emitted frame and render it as base64 text for the wire."""
    pcm = float_to_pcm16(frame.samples)
    return EncodedAudio(audio_b64=pcm16_to_base64(pcm), num_samples=int(pcm.shape[0]))


def pcm16le_to_float32(pcm_bytes: bytes) -> NDArray[np.float32]:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0).

    A truncated trailing byte is dropped.
    """
    if len(pcm_bytes) % 2 != 0:
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")
    return audio_i16.astype(np.float32) / float(PCM16_NEGATIVE_FULL_SCALE)
