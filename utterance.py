"""Utterance accumulation and the shared transcript log."""

from __future__ import annotations

import threading
from typing import Callable

TranscriptCallback = Callable[[str], None]


class UtteranceBuffer:
    """Speech bytes accumulated since the last flush.

    Owned by a single capture session and only touched from its thread.
    """

    def __init__(self) -> None:
        self._data = bytearray()

    def append(self, pcm_bytes: bytes) -> None:
        self._data.extend(pcm_bytes)

    def __len__(self) -> int:
        return len(self._data)

    def length(self) -> int:
        return len(self._data)

    def flush_and_reset(self) -> bytes:
        data = bytes(self._data)
        self._data = bytearray()
        return data

    def discard(self) -> None:
        self._data = bytearray()


class TranscriptLog:
    """Append-only list of recognized text, safe to read while being appended."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chunks: list[str] = []
        self._subscribers: list[TranscriptCallback] = []

    def append(self, text: str) -> None:
        with self._lock:
            self._chunks.append(text)
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(text)

    def snapshot(self) -> list[str]:
        with self._lock:
            return list(self._chunks)

    def subscribe(self, callback: TranscriptCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)
