# pylint: disable=missing-module-docstring,missing-function-docstring

import numpy as np
import pytest

from audio.accumulator import FrameAccumulator


def chunk(n: int, value: float = 0.1) -> np.ndarray:
    return np.full(n, value, dtype=np.float32)


def test_below_threshold_emits_nothing() -> None:
    acc = FrameAccumulator(source_rate_hz=48_000)

    assert acc.push(chunk(2048)) is None
    assert acc.pending_samples == 1024


def test_crossing_threshold_emits_entire_backlog_and_resets() -> None:
    acc = FrameAccumulator(source_rate_hz=48_000)

    results = [acc.push(chunk(1024, value=float(i) / 10)) for i in range(5)]

    assert results[:4] == [None, None, None, None]
    frame = results[4]
    assert frame is not None
    # 5 * 512 resampled samples, none dropped
    assert frame.samples.shape[0] == 2560
    assert frame.sample_rate_hz == 24_000
    np.testing.assert_allclose(frame.samples[:512], 0.0)
    np.testing.assert_allclose(frame.samples[-512:], 0.4, rtol=1e-6)
    assert acc.pending_samples == 0


def test_target_rate_input_is_not_resampled() -> None:
    acc = FrameAccumulator(source_rate_hz=24_000)

    frame = acc.push(chunk(2400))

    assert frame is not None
    assert frame.samples.shape[0] == 2400


def test_flush_emits_sub_threshold_remainder_once() -> None:
    acc = FrameAccumulator(source_rate_hz=24_000)
    acc.push(chunk(100))

    frame = acc.flush()

    assert frame is not None
    assert frame.samples.shape[0] == 100
    assert acc.flush() is None


def test_reset_drops_backlog() -> None:
    acc = FrameAccumulator(source_rate_hz=24_000)
    acc.push(chunk(100))

    acc.reset()

    assert acc.pending_samples == 0
    assert acc.flush() is None


def test_invalid_source_rate_rejected() -> None:
    with pytest.raises(ValueError):
        FrameAccumulator(source_rate_hz=0)


def test_backlog_survives_reuse_of_capture_buffer() -> None:
    acc = FrameAccumulator(source_rate_hz=24_000)
    buf = chunk(1200, value=0.5)

    assert acc.push(buf) is None
    buf[:] = 0.0
    frame = acc.push(buf)

    assert frame is not None
    np.testing.assert_allclose(frame.samples[:1200], 0.5)
    np.testing.assert_allclose(frame.samples[1200:], 0.0)


def test_emitted_frame_does_not_alias_capture_buffer() -> None:
    acc = FrameAccumulator(source_rate_hz=24_000)
    buf = chunk(2400, value=0.25)

    frame = acc.push(buf)
    buf[:] = -1.0

    assert frame is not None
    np.testing.assert_allclose(frame.samples, 0.25)
