"""Microphone capture provider backed by sounddevice."""

from __future__ import annotations

import logging
import threading
from queue import Empty, Full, Queue
from typing import Any, Optional

from errors import CaptureStreamError
from models import Device

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceCaptureStream:
    def __init__(self, queue_maxsize: int = 50) -> None:
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._queue: Queue[bytes | None] = Queue(maxsize=queue_maxsize)
        self._ended = False
        self._failed = False
        self.dropped_chunks = 0

    def start(self, device: Device, chunk_size_samples: int) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            self._stream = sd.InputStream(
                device=device.index if device.index is not None else device.name,
                samplerate=device.sample_rate,
                channels=device.channels,
                dtype="int16",
                blocksize=chunk_size_samples,
                callback=self._on_audio,
                finished_callback=self._on_finished,
            )
            self._running = True
            self._stream.start()

    def read(self, timeout: float) -> Optional[bytes]:
        if self._ended:
            return b""
        try:
            payload = self._queue.get(timeout=timeout)
        except Empty:
            return None
        if payload is None:  # Sentinel
            self._ended = True
            if self._failed:
                raise CaptureStreamError("capture stream terminated unexpectedly")
            return b""
        return payload

    def close(self) -> None:
        with self._lock:
            if not self._running:
                self._emit_sentinel_if_needed()
                return
            self._running = False
            if self._stream is not None:
                self._stream.stop()
                self._stream.close()
                self._stream = None
            self._emit_sentinel_if_needed()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running:
            return
        if np is None:
            return
        if status:
            logger.debug("capture status: %s", status)
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        try:
            self._queue.put_nowait(payload)
        except Full:
            self.dropped_chunks += 1

    def _on_finished(self) -> None:
        if not self._running:
            return
        # Finished while nobody asked it to stop.
        self._failed = True
        self._running = False
        self._emit_sentinel_if_needed()

    def _emit_sentinel_if_needed(self) -> None:
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except Full:
                # Make room by dropping the oldest chunk.
                try:
                    self._queue.get_nowait()
                except Empty:
                    pass


class SoundDeviceCaptureProvider:
    def __init__(self, queue_maxsize: int = 50) -> None:
        self._queue_maxsize = queue_maxsize

    def open(self, device: Device, chunk_size_samples: int) -> SoundDeviceCaptureStream:
        stream = SoundDeviceCaptureStream(queue_maxsize=self._queue_maxsize)
        try:
            stream.start(device, chunk_size_samples)
        except Exception as exc:
            raise CaptureStreamError(f"cannot open {device.name}: {exc}") from exc
        return stream
