"""
Client-side frame accumulator.

Consumes raw capture chunks at an arbitrary source rate, resamples each
chunk to the target rate, and accumulates the result. Once the pending
backlog reaches FRAME_MIN_SAMPLES, the whole backlog is emitted as one
AudioFrame and the accumulator resets.

Every resampled sample lands in exactly one emitted frame: nothing pending
is discarded on emission. flush() emits a sub-threshold remainder on stop.
"""

from __future__ import annotations

import time

import numpy as np
from numpy.typing import NDArray

from audio.frames import AudioFrame
from audio.resample import downsample_to_target
from spec import AUDIO_TARGET_SAMPLE_RATE_HZ, FRAME_MIN_SAMPLES


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class FrameAccumulator:
    """
    Pending-sample buffer held for one capture session.

    Not thread-safe; the capture callback is treated as a serialized producer.
    """

    def __init__(
        self,
        *,
        source_rate_hz: int,
        target_rate_hz: int = AUDIO_TARGET_SAMPLE_RATE_HZ,
        min_frame_samples: int = FRAME_MIN_SAMPLES,
    ) -> None:
        if source_rate_hz <= 0:
            raise ValueError("source_rate_hz must be > 0")
        if min_frame_samples <= 0:
            raise ValueError("min_frame_samples must be > 0")

        self._source_rate_hz = source_rate_hz
        self._target_rate_hz = target_rate_hz
        self._min_frame_samples = min_frame_samples
        self._chunks: list[NDArray[np.float32]] = []
        self._pending = 0

    @property
    def source_rate_hz(self) -> int:
        return self._source_rate_hz

    @property
    def pending_samples(self) -> int:
        """Resampled samples accumulated since the last emission."""
        return self._pending

    def push(self, samples: NDArray[np.float32]) -> AudioFrame | None:
        """
        Add one capture chunk.

        Returns an AudioFrame carrying the entire backlog once the threshold
        is reached, otherwise None.
        """
        down = downsample_to_target(samples, self._source_rate_hz, self._target_rate_hz)
        if down.shape[0]:
            # Capture callbacks reuse their buffers; never hold caller memory
            self._chunks.append(np.array(down, dtype=np.float32, copy=True))
            self._pending += int(down.shape[0])

        if self._pending >= self._min_frame_samples:
            return self._emit()
        return None

    def flush(self) -> AudioFrame | None:
        """Emit whatever is pending regardless of threshold (None if empty)."""
        if self._pending == 0:
            return None
        return self._emit()

    def reset(self) -> None:
        """Drop the backlog without emitting it."""
        self._chunks.clear()
        self._pending = 0

    def _emit(self) -> AudioFrame:
        if len(self._chunks) == 1:
            merged = self._chunks[0]
        else:
            merged = np.concatenate(self._chunks)
        self.reset()
        return AudioFrame(
            samples=merged,
            sample_rate_hz=self._target_rate_hz,
            ts_ms=_now_ms(),
        )
