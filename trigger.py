"""Flush policy for classified frames and the recognition sinks it feeds.

Speech frames are buffered. A silence frame flushes the buffer once it
holds at least one second of target-format audio; shorter silences leave
the buffer untouched so an utterance spanning brief pauses stays whole.

Flushed audio goes to a sink. ``InlineRecognition`` recognizes on the
calling thread, which blocks capture while the recognizer runs.
``RecognitionWorker`` hands the audio to a single background thread
through a bounded queue instead.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Full, Queue
from typing import Callable, Optional

from errors import QUEUE_FULL, RecognitionError
from interfaces import RecognitionSink, SpeechRecognizer
from models import (
    FLUSH_THRESHOLD_BYTES,
    ClassifiedFrame,
    ErrorEvent,
    RecognitionOutcome,
    TriggerAction,
)
from utterance import TranscriptLog, UtteranceBuffer

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[ErrorEvent], None]


def recognize_into(
    recognizer: SpeechRecognizer,
    transcript: TranscriptLog,
    pcm_bytes: bytes,
) -> RecognitionOutcome:
    """Run one recognition and append non-blank text, lowercased."""
    try:
        text = recognizer.recognize(pcm_bytes)
    except RecognitionError as exc:
        return RecognitionOutcome(error=exc.to_event())
    except Exception as exc:
        return RecognitionOutcome(error=RecognitionError(str(exc)).to_event())

    text = text or ""
    if text.strip():
        transcript.append(text.lower())
    return RecognitionOutcome(text=text)


class TranscriptionTrigger:
    def __init__(
        self,
        buffer: UtteranceBuffer,
        sink: RecognitionSink,
        threshold_bytes: int = FLUSH_THRESHOLD_BYTES,
    ) -> None:
        self._buffer = buffer
        self._sink = sink
        self._threshold_bytes = threshold_bytes

    @property
    def threshold_bytes(self) -> int:
        return self._threshold_bytes

    def process(self, frame: ClassifiedFrame) -> TriggerAction:
        if frame.is_speech:
            self._buffer.append(frame.chunk.pcm16_bytes)
            return TriggerAction.BUFFERED
        if len(self._buffer) >= self._threshold_bytes:
            pcm = self._buffer.flush_and_reset()
            logger.debug("flushing %d bytes for recognition", len(pcm))
            self._sink.submit(pcm)
            return TriggerAction.FLUSHED
        return TriggerAction.IGNORED


class InlineRecognition:
    def __init__(
        self,
        recognizer: SpeechRecognizer,
        transcript: TranscriptLog,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._recognizer = recognizer
        self._transcript = transcript
        self._on_error = on_error

    def submit(self, pcm_bytes: bytes) -> None:
        outcome = recognize_into(self._recognizer, self._transcript, pcm_bytes)
        if outcome.error is not None:
            logger.warning("recognition failed: %s", outcome.error.message)
            if self._on_error:
                self._on_error(outcome.error)


class RecognitionWorker:
    """Recognizes flushed utterances on a dedicated thread.

    Transcript entries are appended in the order recognition completes.
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer,
        transcript: TranscriptLog,
        on_error: Optional[ErrorCallback] = None,
        queue_maxsize: int = 4,
    ) -> None:
        self._recognizer = recognizer
        self._transcript = transcript
        self._on_error = on_error
        self._queue: Queue[bytes | None] = Queue(maxsize=queue_maxsize)
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.dropped_utterances = 0

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            self._thread = threading.Thread(
                target=self._worker, name="recognition-worker", daemon=True
            )
            self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return
        self._put_sentinel()
        thread.join(timeout=timeout)
        if thread.is_alive():
            logger.warning("recognition worker did not stop within %.1fs", timeout)

    def _put_sentinel(self) -> None:
        # Pending utterances are dropped so a busy worker cannot block shutdown.
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except Full:
                try:
                    pending = self._queue.get_nowait()
                except Empty:
                    continue
                if pending:
                    logger.warning("recognition worker stopping, dropped %d bytes", len(pending))

    def submit(self, pcm_bytes: bytes) -> None:
        try:
            self._queue.put_nowait(pcm_bytes)
        except Full:
            self.dropped_utterances += 1
            logger.warning("recognition queue full, dropped %d bytes", len(pcm_bytes))
            self._report(
                RecognitionError(code=QUEUE_FULL, retryable=True).to_event()
            )

    def _worker(self) -> None:
        while True:
            try:
                pcm = self._queue.get(timeout=0.2)
            except Empty:
                continue
            if pcm is None:  # Sentinel
                return
            outcome = recognize_into(self._recognizer, self._transcript, pcm)
            if outcome.error is not None:
                logger.warning("recognition failed: %s", outcome.error.message)
                self._report(outcome.error)

    def _report(self, event: ErrorEvent) -> None:
        if self._on_error:
            self._on_error(event)
