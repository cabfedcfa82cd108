"""Speech/silence classification of normalized frames."""

from __future__ import annotations

from errors import DetectionError
from interfaces import VoiceActivityDetector
from models import ClassifiedFrame, NormalizedChunk


class FrameClassifier:
    def __init__(self, detector: VoiceActivityDetector) -> None:
        self._detector = detector

    def classify(self, chunk: NormalizedChunk) -> bool:
        """Return True for speech.

        Detector failures propagate as ``DetectionError``; there is no
        default verdict.
        """
        try:
            verdict = self._detector.detect(
                pcm_bytes=chunk.pcm16_bytes,
                sample_rate=chunk.sample_rate,
                channels=chunk.channels,
            )
        except DetectionError:
            raise
        except Exception as exc:
            raise DetectionError(f"detector failed: {exc}") from exc
        return bool(verdict)

    def classify_frame(self, chunk: NormalizedChunk) -> ClassifiedFrame:
        return ClassifiedFrame(chunk=chunk, is_speech=self.classify(chunk))
