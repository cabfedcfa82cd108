"""Core data models for the transcriber."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

SAMPLE_RATE = 16000
WINDOW_SIZE_SAMPLES = 512
TARGET_BIT_DEPTH = 16
TARGET_CHANNELS = 1
FLUSH_THRESHOLD_BYTES = SAMPLE_RATE * 2


class SessionState(str, Enum):
    IDLE = "IDLE"
    STARTING = "STARTING"
    ACTIVE = "ACTIVE"
    STOPPING = "STOPPING"


class RefreshState(str, Enum):
    IDLE = "IDLE"
    REFRESHING = "REFRESHING"


class TriggerAction(str, Enum):
    BUFFERED = "buffered"
    FLUSHED = "flushed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class AudioFormat:
    sample_rate: int
    channels: int
    bit_depth: int = 16
    signed: bool = True
    big_endian: bool = False

    @property
    def frame_bytes(self) -> int:
        return self.channels * (self.bit_depth // 8)


TARGET_FORMAT = AudioFormat(
    sample_rate=SAMPLE_RATE,
    channels=TARGET_CHANNELS,
    bit_depth=TARGET_BIT_DEPTH,
    signed=True,
    big_endian=False,
)


@dataclass(frozen=True)
class Device:
    """A capture device as reported by the device directory.

    Equality covers the name and every format attribute, so a device that
    reappears with a different native format counts as a new device.
    ``index`` is the backend's device handle; the same name can appear once
    per host API, so capture opens by index when one is known.
    """

    name: str
    sample_rate: int
    channels: int
    bit_depth: int = 16
    signed: bool = True
    big_endian: bool = False
    host_api: str = ""
    index: Optional[int] = None

    @property
    def audio_format(self) -> AudioFormat:
        return AudioFormat(
            sample_rate=self.sample_rate,
            channels=self.channels,
            bit_depth=self.bit_depth,
            signed=self.signed,
            big_endian=self.big_endian,
        )


@dataclass
class AudioChunk:
    pcm_bytes: bytes
    audio_format: AudioFormat


@dataclass
class NormalizedChunk:
    pcm16_bytes: bytes
    sample_rate: int = SAMPLE_RATE
    channels: int = TARGET_CHANNELS
    bit_depth: int = TARGET_BIT_DEPTH


@dataclass
class ClassifiedFrame:
    chunk: NormalizedChunk
    is_speech: bool


@dataclass
class ErrorEvent:
    origin: str
    code: str
    message: str = ""
    retryable: bool = False


@dataclass
class RecognitionOutcome:
    """Result of one recognition call: either ``text`` or ``error`` is meaningful."""

    text: str = ""
    error: Optional[ErrorEvent] = None

    @property
    def ok(self) -> bool:
        return self.error is None
