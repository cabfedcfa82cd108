"""Voice activity detector backed by WebRTC VAD."""

from __future__ import annotations

from errors import DetectionError

try:
    import webrtcvad
except Exception:  # pragma: no cover
    webrtcvad = None  # type: ignore

SUPPORTED_RATES = (8000, 16000, 32000, 48000)


class WebRtcVadDetector:
    """Classifies 16-bit mono frames of any length.

    WebRTC VAD only accepts 10/20/30 ms frames, so the input is cut into
    ``frame_ms`` sub-frames (a trailing remainder is ignored). The frame is
    speech when at least ``min_speech_ratio`` of them are voiced.
    """

    def __init__(
        self,
        aggressiveness: int = 2,
        frame_ms: int = 10,
        min_speech_ratio: float = 0.0,
    ) -> None:
        if webrtcvad is None:
            raise RuntimeError("webrtcvad is not installed")
        if frame_ms not in (10, 20, 30):
            raise ValueError(f"frame_ms must be 10, 20 or 30, got {frame_ms}")
        self._vad = webrtcvad.Vad(min(max(aggressiveness, 0), 3))
        self._frame_ms = frame_ms
        self._min_speech_ratio = min(max(min_speech_ratio, 0.0), 1.0)

    def detect(self, pcm_bytes: bytes, sample_rate: int, channels: int) -> bool:
        if channels != 1:
            raise DetectionError(f"expected mono audio, got {channels} channels")
        if sample_rate not in SUPPORTED_RATES:
            raise DetectionError(f"unsupported sample rate: {sample_rate}")

        frame_bytes = int(sample_rate * self._frame_ms / 1000) * 2
        total = len(pcm_bytes) // frame_bytes
        if total == 0:
            return False
        voiced = 0
        for index in range(total):
            frame = pcm_bytes[index * frame_bytes : (index + 1) * frame_bytes]
            if self._vad.is_speech(frame, sample_rate):
                voiced += 1
        if self._min_speech_ratio <= 0.0:
            return voiced > 0
        return voiced / total >= self._min_speech_ratio
