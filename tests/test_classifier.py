from __future__ import annotations

import pytest

from classifier import FrameClassifier
from errors import DetectionError
from models import SAMPLE_RATE, NormalizedChunk


class FakeDetector:
    def __init__(self, verdict: bool = True, error: Exception | None = None) -> None:
        self.verdict = verdict
        self.error = error
        self.calls: list[tuple[int, int, int]] = []

    def detect(self, pcm_bytes: bytes, sample_rate: int, channels: int) -> bool:
        self.calls.append((len(pcm_bytes), sample_rate, channels))
        if self.error is not None:
            raise self.error
        return self.verdict


def test_detector_receives_target_format() -> None:
    detector = FakeDetector(verdict=True)
    classifier = FrameClassifier(detector)

    assert classifier.classify(NormalizedChunk(pcm16_bytes=b"\x00\x00" * 512)) is True
    assert detector.calls == [(1024, SAMPLE_RATE, 1)]


def test_silence_verdict() -> None:
    classifier = FrameClassifier(FakeDetector(verdict=False))
    frame = classifier.classify_frame(NormalizedChunk(pcm16_bytes=b"\x00\x00"))
    assert frame.is_speech is False
    assert frame.chunk.pcm16_bytes == b"\x00\x00"


def test_detector_failure_is_wrapped() -> None:
    classifier = FrameClassifier(FakeDetector(error=OSError("boom")))
    with pytest.raises(DetectionError, match="boom") as info:
        classifier.classify(NormalizedChunk(pcm16_bytes=b"\x00\x00"))
    assert isinstance(info.value.__cause__, OSError)
    assert info.value.origin == "detection"


def test_detection_error_passes_through() -> None:
    original = DetectionError("bad frame")
    classifier = FrameClassifier(FakeDetector(error=original))
    with pytest.raises(DetectionError) as info:
        classifier.classify(NormalizedChunk(pcm16_bytes=b"\x00\x00"))
    assert info.value is original
