# pylint: disable=missing-module-docstring,missing-function-docstring

import base64

import numpy as np

from audio.frames import AudioFrame
from audio.pcm import (
    base64_len_for_samples,
    encode_frame,
    float_to_pcm16,
    pcm16_to_bytes,
    pcm16le_to_float32,
)
from spec import MIN_B64_CHARS_FOR_COMMIT


def test_quantization_stays_in_int16_range_and_keeps_length() -> None:
    pcm = float_to_pcm16(np.array([1, 0.5, 0, -0.5, -1], dtype=np.float32))

    assert pcm.dtype == np.int16
    assert pcm.shape[0] == 5
    assert pcm.tolist() == [32767, 16383, 0, -16384, -32768]


def test_out_of_range_values_are_clamped() -> None:
    pcm = float_to_pcm16(np.array([3.0, -7.5], dtype=np.float32))

    assert pcm.tolist() == [32767, -32768]


def test_bytes_are_little_endian() -> None:
    pcm = np.array([1, -2], dtype=np.int16)

    assert pcm16_to_bytes(pcm) == b"\x01\x00\xfe\xff"


def test_encode_frame_produces_base64_of_pcm16le() -> None:
    frame = AudioFrame(
        samples=np.array([0.0, 1.0, -1.0], dtype=np.float32),
        sample_rate_hz=24_000,
        ts_ms=0,
    )

    encoded = encode_frame(frame)

    assert encoded.num_samples == 3
    raw = base64.b64decode(encoded.audio_b64)
    assert np.frombuffer(raw, dtype="<i2").tolist() == [0, 32767, -32768]
    assert len(encoded.audio_b64) == base64_len_for_samples(3)


def test_minimum_frame_encodes_to_commit_threshold() -> None:
    frame = AudioFrame(
        samples=np.zeros(2400, dtype=np.float32),
        sample_rate_hz=24_000,
        ts_ms=0,
    )

    assert len(encode_frame(frame).audio_b64) == MIN_B64_CHARS_FOR_COMMIT == 6400


def test_pcm16le_to_float32_drops_trailing_odd_byte() -> None:
    out = pcm16le_to_float32(b"\x00\x80\x00\x40\x01")

    assert out.dtype == np.float32
    np.testing.assert_allclose(out, [-1.0, 0.5])
