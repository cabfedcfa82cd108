"""Protocol interfaces used by the controllers."""

from __future__ import annotations

from typing import Optional, Protocol

from models import Device


class CaptureStream(Protocol):
    def read(self, timeout: float) -> Optional[bytes]:
        """Next chunk, ``None`` on timeout, ``b""`` once the stream has ended."""
        ...

    def close(self) -> None: ...


class CaptureProvider(Protocol):
    def open(self, device: Device, chunk_size_samples: int) -> CaptureStream: ...


class DeviceDirectory(Protocol):
    def list(self) -> list[Device]: ...


class VoiceActivityDetector(Protocol):
    def detect(self, pcm_bytes: bytes, sample_rate: int, channels: int) -> bool: ...


class SpeechRecognizer(Protocol):
    def recognize(self, pcm_bytes: bytes) -> str: ...


class RecognitionSink(Protocol):
    def submit(self, pcm_bytes: bytes) -> None: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_model(self) -> str: ...

    def set_model(self, model: str) -> None: ...

    def get_device_name(self) -> str: ...

    def set_device_name(self, name: str) -> None: ...

    def get_vad_aggressiveness(self) -> int: ...

    def set_vad_aggressiveness(self, level: int) -> None: ...
