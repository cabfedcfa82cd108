"""PCM conversion from a device's native format to the fixed target format."""

from __future__ import annotations

import numpy as np

from errors import FormatError
from models import TARGET_FORMAT, AudioChunk, AudioFormat, NormalizedChunk

SUPPORTED_BIT_DEPTHS = (8, 16, 24, 32)


def validate_format(audio_format: AudioFormat) -> None:
    if audio_format.sample_rate <= 0:
        raise FormatError(f"invalid sample rate: {audio_format.sample_rate}")
    if audio_format.channels <= 0:
        raise FormatError(f"invalid channel count: {audio_format.channels}")
    if audio_format.bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise FormatError(f"unsupported bit depth: {audio_format.bit_depth}")


def normalize(chunk: AudioChunk) -> NormalizedChunk:
    """Convert ``chunk`` to 16 kHz, 16-bit signed little-endian mono."""
    fmt = chunk.audio_format
    validate_format(fmt)
    if len(chunk.pcm_bytes) % fmt.frame_bytes:
        raise FormatError(
            f"chunk of {len(chunk.pcm_bytes)} bytes is not a whole number of "
            f"{fmt.frame_bytes}-byte frames"
        )
    if fmt == TARGET_FORMAT:
        return NormalizedChunk(pcm16_bytes=bytes(chunk.pcm_bytes))

    samples = _decode(chunk.pcm_bytes, fmt)
    mono = _to_mono(samples, fmt.channels)
    resampled = resample_linear(mono, fmt.sample_rate, TARGET_FORMAT.sample_rate)
    pcm16 = np.clip(np.rint(resampled), -32768, 32767).astype("<i2")
    return NormalizedChunk(pcm16_bytes=pcm16.tobytes())


def resample_linear(audio: np.ndarray, src_rate: int, dst_rate: int) -> np.ndarray:
    if src_rate == dst_rate or audio.size == 0:
        return audio
    duration = audio.shape[0] / src_rate
    dst_len = max(1, int(round(duration * dst_rate)))
    src_x = np.linspace(0.0, duration, num=audio.shape[0], endpoint=False)
    dst_x = np.linspace(0.0, duration, num=dst_len, endpoint=False)
    return np.interp(dst_x, src_x, audio)


def _decode(pcm: bytes, fmt: AudioFormat) -> np.ndarray:
    """Decode interleaved PCM to float64 samples scaled to the int16 range."""
    order = ">" if fmt.big_endian else "<"
    if fmt.bit_depth == 24:
        raw = np.frombuffer(pcm, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        if fmt.big_endian:
            raw = raw[:, ::-1]
        values = raw[:, 0] | (raw[:, 1] << 8) | (raw[:, 2] << 16)
        if fmt.signed:
            values = np.where(values >= 1 << 23, values - (1 << 24), values)
        else:
            values = values - (1 << 23)
        return values.astype(np.float64) / 256.0

    kind = "i" if fmt.signed else "u"
    width = fmt.bit_depth // 8
    dtype = np.dtype(f"{order}{kind}{width}") if width > 1 else np.dtype(f"{kind}1")
    values = np.frombuffer(pcm, dtype=dtype).astype(np.float64)
    if not fmt.signed:
        values -= float(1 << (fmt.bit_depth - 1))
    return values * (2.0 ** (16 - fmt.bit_depth))


def _to_mono(samples: np.ndarray, channels: int) -> np.ndarray:
    if channels == 1:
        return samples
    return samples.reshape(-1, channels).mean(axis=1)
