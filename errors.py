"""Shared error origins, codes and user-facing messages."""

from __future__ import annotations

from models import ErrorEvent

ORIGIN_CAPTURE = "capture"
ORIGIN_DETECTION = "detection"
ORIGIN_RECOGNITION = "recognition"
ORIGIN_ENUMERATION = "enumeration"
ORIGIN_FORMAT = "format"

UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
DETECTOR_FAILED = "DETECTOR_FAILED"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"
QUEUE_FULL = "QUEUE_FULL"
ENUMERATION_FAILED = "ENUMERATION_FAILED"
STREAM_FAILED = "STREAM_FAILED"

ERROR_MESSAGES = {
    UNSUPPORTED_FORMAT: "Device audio format is not supported.",
    DETECTOR_FAILED: "Voice activity detection failed, capture stopped.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
    ASR_PROTOCOL_ERROR: "ASR response format is invalid.",
    QUEUE_FULL: "Recognition is falling behind, an utterance was dropped.",
    ENUMERATION_FAILED: "Could not list capture devices.",
    STREAM_FAILED: "Capture device stopped unexpectedly.",
}


class TranscriberError(Exception):
    origin = ""
    default_code = ""

    def __init__(self, message: str = "", code: str = "") -> None:
        self.code = code or self.default_code
        self.message = message or ERROR_MESSAGES.get(self.code, "")
        super().__init__(self.message)

    def to_event(self) -> ErrorEvent:
        return ErrorEvent(origin=self.origin, code=self.code, message=self.message)


class FormatError(TranscriberError):
    origin = ORIGIN_FORMAT
    default_code = UNSUPPORTED_FORMAT


class DetectionError(TranscriberError):
    origin = ORIGIN_DETECTION
    default_code = DETECTOR_FAILED


class RecognitionError(TranscriberError):
    origin = ORIGIN_RECOGNITION
    default_code = ASR_PROTOCOL_ERROR

    def __init__(self, message: str = "", code: str = "", retryable: bool = False) -> None:
        super().__init__(message, code)
        self.retryable = retryable

    def to_event(self) -> ErrorEvent:
        event = super().to_event()
        event.retryable = self.retryable
        return event


class EnumerationError(TranscriberError):
    origin = ORIGIN_ENUMERATION
    default_code = ENUMERATION_FAILED


class CaptureStreamError(TranscriberError):
    origin = ORIGIN_CAPTURE
    default_code = STREAM_FAILED
