"""Tests for the format normalizer."""

from __future__ import annotations

import numpy as np
import pytest

from errors import FormatError
from models import SAMPLE_RATE, TARGET_FORMAT, AudioChunk, AudioFormat
from normalizer import normalize, resample_linear


def _tone(n_samples: int, sample_rate: int, amplitude: int = 8000) -> np.ndarray:
    t = np.arange(n_samples)
    return (np.sin(2 * np.pi * 440 * t / sample_rate) * amplitude).astype(np.int16)


def test_target_format_passes_through_unchanged() -> None:
    pcm = _tone(512, SAMPLE_RATE).astype("<i2").tobytes()
    result = normalize(AudioChunk(pcm_bytes=pcm, audio_format=TARGET_FORMAT))

    assert result.pcm16_bytes == pcm
    assert result.sample_rate == SAMPLE_RATE
    assert result.channels == 1
    assert result.bit_depth == 16


def test_48k_stereo_becomes_16k_mono() -> None:
    mono = _tone(960, 48000)
    stereo = np.column_stack([mono, mono]).astype("<i2")
    fmt = AudioFormat(sample_rate=48000, channels=2, bit_depth=16)

    result = normalize(AudioChunk(pcm_bytes=stereo.tobytes(), audio_format=fmt))

    assert result.sample_rate == SAMPLE_RATE
    assert result.channels == 1
    assert result.bit_depth == 16
    out = np.frombuffer(result.pcm16_bytes, dtype="<i2")
    assert out.size == 320
    # Decimating by 3 lands on source samples.
    assert np.max(np.abs(out.astype(np.int32) - mono[::3])) <= 1


def test_stereo_is_averaged() -> None:
    left = np.full(160, 1000, dtype=np.int16)
    right = np.full(160, 3000, dtype=np.int16)
    stereo = np.column_stack([left, right]).astype("<i2")
    fmt = AudioFormat(sample_rate=SAMPLE_RATE, channels=2)

    result = normalize(AudioChunk(pcm_bytes=stereo.tobytes(), audio_format=fmt))

    out = np.frombuffer(result.pcm16_bytes, dtype="<i2")
    assert out.size == 160
    assert np.all(out == 2000)


def test_big_endian_input_is_written_little_endian() -> None:
    samples = np.array([1, -2, 300, -32768, 32767], dtype=np.int16)
    fmt = AudioFormat(sample_rate=SAMPLE_RATE, channels=1, big_endian=True)

    result = normalize(AudioChunk(pcm_bytes=samples.astype(">i2").tobytes(), audio_format=fmt))

    assert np.array_equal(np.frombuffer(result.pcm16_bytes, dtype="<i2"), samples)


def test_unsigned_8bit_is_centered_and_scaled() -> None:
    fmt = AudioFormat(sample_rate=SAMPLE_RATE, channels=1, bit_depth=8, signed=False)
    result = normalize(AudioChunk(pcm_bytes=bytes([128, 129, 127, 0]), audio_format=fmt))

    out = np.frombuffer(result.pcm16_bytes, dtype="<i2")
    assert out.tolist() == [0, 256, -256, -32768]


def test_signed_24bit_is_scaled_down() -> None:
    # 0x010000 and -1 in 24-bit little-endian.
    pcm = bytes([0x00, 0x00, 0x01, 0xFF, 0xFF, 0xFF])
    fmt = AudioFormat(sample_rate=SAMPLE_RATE, channels=1, bit_depth=24)

    result = normalize(AudioChunk(pcm_bytes=pcm, audio_format=fmt))

    out = np.frombuffer(result.pcm16_bytes, dtype="<i2")
    assert out[0] == 256
    assert out[1] in (0, -1)


def test_signed_32bit_is_scaled_down() -> None:
    samples = np.array([1 << 16, -(1 << 20)], dtype="<i4")
    fmt = AudioFormat(sample_rate=SAMPLE_RATE, channels=1, bit_depth=32)

    result = normalize(AudioChunk(pcm_bytes=samples.tobytes(), audio_format=fmt))

    assert np.frombuffer(result.pcm16_bytes, dtype="<i2").tolist() == [1, -16]


def test_empty_chunk_normalizes_to_empty() -> None:
    fmt = AudioFormat(sample_rate=44100, channels=2)
    result = normalize(AudioChunk(pcm_bytes=b"", audio_format=fmt))
    assert result.pcm16_bytes == b""


@pytest.mark.parametrize(
    "fmt",
    [
        AudioFormat(sample_rate=16000, channels=0),
        AudioFormat(sample_rate=0, channels=1),
        AudioFormat(sample_rate=-8000, channels=1),
        AudioFormat(sample_rate=16000, channels=1, bit_depth=12),
    ],
)
def test_inconsistent_format_is_rejected(fmt: AudioFormat) -> None:
    with pytest.raises(FormatError):
        normalize(AudioChunk(pcm_bytes=b"\x00\x00" * 4, audio_format=fmt))


def test_partial_frame_is_rejected() -> None:
    fmt = AudioFormat(sample_rate=16000, channels=2)
    with pytest.raises(FormatError, match="whole number"):
        normalize(AudioChunk(pcm_bytes=b"\x00" * 6, audio_format=fmt))


def test_resample_linear_keeps_duration() -> None:
    audio = np.zeros(44100, dtype=np.float64)
    assert resample_linear(audio, 44100, 16000).shape[0] == 16000
