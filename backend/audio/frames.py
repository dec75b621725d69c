"""
Audio frame primitives.

Pure data containers only.
No behavior, no queues, no timing logic.
"""

from __future__ import annotations
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class AudioFrame:
    """
    One discrete unit of resampled audio emitted for transmission.

    samples:
        Mono float32 samples at sample_rate_hz, nominally in [-1.0, 1.0].
        Quantization to PCM16 happens in the encoder, not here.

    sample_rate_hz:
        Always the relay target rate (spec.AUDIO_TARGET_SAMPLE_RATE_HZ)
        for frames produced by FrameAccumulator.

    ts_ms:
        Wall-clock timestamp (milliseconds) when the frame was emitted.
        Used for observability only (not control logic).
    """
    samples: NDArray[np.float32]
    sample_rate_hz: int
    ts_ms: int


@dataclass(frozen=True)
class EncodedAudio:
    """
    Wire-ready encoding of one AudioFrame.

    audio_b64:
        Base64 text of the PCM16 little-endian bytes.

    num_samples:
        Sample count of the source frame (2 bytes each before encoding).
    """
    audio_b64: str
    num_samples: int
