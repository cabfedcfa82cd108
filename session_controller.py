"""State-machine based capture session orchestration."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from classifier import FrameClassifier
from errors import CaptureStreamError, DetectionError, FormatError, TranscriberError
from interfaces import CaptureProvider, CaptureStream, SpeechRecognizer, VoiceActivityDetector
from models import (
    FLUSH_THRESHOLD_BYTES,
    WINDOW_SIZE_SAMPLES,
    AudioChunk,
    Device,
    ErrorEvent,
    SessionState,
)
from normalizer import normalize
from trigger import InlineRecognition, RecognitionWorker, TranscriptionTrigger
from utterance import TranscriptLog, UtteranceBuffer

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
ErrorCallback = Callable[[ErrorEvent], None]


class _CaptureSession:
    def __init__(self, session_id: int, device: Device) -> None:
        self.session_id = session_id
        self.device = device
        self.buffer = UtteranceBuffer()
        self.stop_event = threading.Event()
        self.stream: Optional[CaptureStream] = None
        self.thread: Optional[threading.Thread] = None


class CaptureSessionController:
    """Owns at most one capture stream, bound to the selected device.

    Each chunk is normalized, classified and dispositioned before the next
    one is read. Switching or clearing the device stops the running session
    and joins its thread before anything new starts; buffered speech of the
    stopped session is discarded.

    ``on_state_change`` runs with the state lock held and must not call
    back into ``select_device`` or ``shutdown`` synchronously.
    """

    def __init__(
        self,
        capture_provider: CaptureProvider,
        detector: VoiceActivityDetector,
        recognizer: SpeechRecognizer,
        transcript: Optional[TranscriptLog] = None,
        decoupled_recognition: bool = False,
        recognition_queue_maxsize: int = 4,
        threshold_bytes: int = FLUSH_THRESHOLD_BYTES,
        chunk_size_samples: int = WINDOW_SIZE_SAMPLES * 2,
        read_timeout_s: float = 0.2,
        stop_timeout_s: float = 5.0,
        on_state_change: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._capture_provider = capture_provider
        self._classifier = FrameClassifier(detector)
        self._transcript = transcript if transcript is not None else TranscriptLog()
        self._threshold_bytes = threshold_bytes
        self._chunk_size_samples = chunk_size_samples
        self._read_timeout_s = read_timeout_s
        self._stop_timeout_s = stop_timeout_s
        self._on_state_change = on_state_change
        self._on_error = on_error

        self._worker: Optional[RecognitionWorker] = None
        if decoupled_recognition:
            self._worker = RecognitionWorker(
                recognizer,
                self._transcript,
                on_error=self._emit_error,
                queue_maxsize=recognition_queue_maxsize,
            )
            self._sink = self._worker
        else:
            self._sink = InlineRecognition(recognizer, self._transcript, on_error=self._emit_error)

        # _switch_lock serializes select/shutdown; _lock guards state and is
        # never held while joining a capture thread.
        self._switch_lock = threading.Lock()
        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session: Optional[_CaptureSession] = None
        self._session_id = 0
        self._closed = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def device(self) -> Optional[Device]:
        session = self._session
        return session.device if session else None

    @property
    def transcript(self) -> TranscriptLog:
        return self._transcript

    @property
    def dropped_utterances(self) -> int:
        return self._worker.dropped_utterances if self._worker else 0

    def select_device(self, device: Optional[Device]) -> None:
        with self._switch_lock:
            if self._closed:
                return
            with self._lock:
                current = self._session
                if (
                    current is not None
                    and device is not None
                    and current.device == device
                    and self._state in (SessionState.STARTING, SessionState.ACTIVE)
                ):
                    return
            self._stop_session()
            if device is not None:
                self._start_session(device)

    def shutdown(self) -> None:
        with self._switch_lock:
            if self._closed:
                return
            self._closed = True
            self._stop_session()
            if self._worker is not None:
                self._worker.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _start_session(self, device: Device) -> None:
        if self._worker is not None:
            self._worker.start()
        with self._lock:
            self._session_id += 1
            session = _CaptureSession(self._session_id, device)
            self._session = session
            self._transition(SessionState.STARTING)
            session.thread = threading.Thread(
                target=self._run,
                args=(session,),
                name=f"capture-{session.session_id}",
                daemon=True,
            )
        logger.debug("starting capture on %s", device.name)
        session.thread.start()

    def _stop_session(self) -> None:
        with self._lock:
            session = self._session
            if session is None:
                return
            self._session = None
            self._transition(SessionState.STOPPING)
            session.stop_event.set()

        thread = session.thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._stop_timeout_s)
            if thread.is_alive():
                logger.warning(
                    "capture thread for %s did not stop within %.1fs, closing its stream",
                    session.device.name,
                    self._stop_timeout_s,
                )
                self._close_stream(session)

        with self._lock:
            self._transition(SessionState.IDLE)
        logger.debug("capture on %s stopped", session.device.name)

    def _teardown(self, session: _CaptureSession, error: Optional[TranscriberError]) -> None:
        """Return to IDLE after the capture loop ended on its own."""
        with self._lock:
            if self._session is session:
                self._session = None
                self._transition(SessionState.STOPPING)
                self._transition(SessionState.IDLE)
        if error is not None and not session.stop_event.is_set():
            logger.error("capture on %s failed: %s", session.device.name, error.message)
            self._emit_error(error.to_event())

    # ------------------------------------------------------------------
    # Capture loop (runs on the session thread)
    # ------------------------------------------------------------------

    def _run(self, session: _CaptureSession) -> None:
        try:
            stream = self._capture_provider.open(session.device, self._chunk_size_samples)
        except CaptureStreamError as exc:
            self._teardown(session, exc)
            return
        except Exception as exc:
            self._teardown(session, CaptureStreamError(f"open failed: {exc}"))
            return

        with self._lock:
            session.stream = stream

        trigger = TranscriptionTrigger(session.buffer, self._sink, self._threshold_bytes)
        error: Optional[TranscriberError] = None
        try:
            while not session.stop_event.is_set():
                try:
                    pcm = stream.read(self._read_timeout_s)
                except CaptureStreamError as exc:
                    error = exc
                    break
                except Exception as exc:
                    error = CaptureStreamError(f"read failed: {exc}")
                    break
                if pcm is None:
                    continue
                if not pcm:
                    logger.debug("capture stream on %s ended", session.device.name)
                    break
                if session.stop_event.is_set():
                    break
                self._mark_active(session)
                try:
                    self._process_chunk(session, trigger, pcm)
                except DetectionError as exc:
                    error = exc
                    break
        finally:
            # Also runs when a caller callback raises out of the loop.
            self._close_stream(session)
            session.buffer.discard()
            self._teardown(session, error)

    def _process_chunk(self, session: _CaptureSession, trigger: TranscriptionTrigger, pcm: bytes) -> None:
        try:
            normalized = normalize(AudioChunk(pcm_bytes=pcm, audio_format=session.device.audio_format))
        except FormatError as exc:
            logger.warning("dropping chunk from %s: %s", session.device.name, exc.message)
            self._emit_error(exc.to_event())
            return
        trigger.process(self._classifier.classify_frame(normalized))

    def _mark_active(self, session: _CaptureSession) -> None:
        with self._lock:
            if self._session is session and self._state == SessionState.STARTING:
                self._transition(SessionState.ACTIVE)

    def _close_stream(self, session: _CaptureSession) -> None:
        with self._lock:
            stream = session.stream
        if stream is None:
            return
        try:
            stream.close()
        except Exception as exc:
            logger.warning("closing capture stream on %s failed: %s", session.device.name, exc)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _emit_error(self, event: ErrorEvent) -> None:
        if self._on_error:
            self._on_error(event)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("session state %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
