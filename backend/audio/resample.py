"""
Box-filter decimation to the relay target rate.

For output sample i, every source sample whose position falls in the span
[i * ratio, (i + 1) * ratio) is averaged. This is decimation, not
interpolation: no smoothing across spans, no phase correction.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from spec import AUDIO_TARGET_SAMPLE_RATE_HZ


def output_length(num_samples: int, src_rate_hz: int, target_rate_hz: int) -> int:
    """floor(num_samples / (src_rate / target_rate)) using integer math."""
    return (num_samples * target_rate_hz) // src_rate_hz


def downsample_to_target(
    samples: NDArray[np.float32],
    src_rate_hz: int,
    target_rate_hz: int = AUDIO_TARGET_SAMPLE_RATE_HZ,
) -> NDArray[np.float32]:
    """
    Resample mono float samples from src_rate_hz to target_rate_hz.

    Returns the input unchanged when the rates are equal. Output spans that
    contain no source sample (only possible when upsampling) are zero.

    Raises:
        ValueError if either rate is not positive.
    """
    if src_rate_hz <= 0 or target_rate_hz <= 0:
        raise ValueError("sample rates must be > 0")

    src = np.asarray(samples, dtype=np.float32)
    if src_rate_hz == target_rate_hz:
        return src

    n_out = output_length(src.shape[0], src_rate_hz, target_rate_hz)
    if n_out <= 0:
        return np.zeros(0, dtype=np.float32)

    ratio = src_rate_hz / target_rate_hz

    # Span i consumes source indices [starts[i], ends[i])
    ends = np.ceil(np.arange(1, n_out + 1, dtype=np.float64) * ratio).astype(np.int64)
    ends = np.minimum(ends, src.shape[0])
    starts = np.concatenate(([0], ends[:-1]))

    cumulative = np.concatenate(([0.0], np.cumsum(src, dtype=np.float64)))
    sums = cumulative[ends] - cumulative[starts]
    counts = ends - starts

    out = np.zeros(n_out, dtype=np.float64)
    nonempty = counts > 0
    out[nonempty] = sums[nonempty] / counts[nonempty]
    return out.astype(np.float32)
