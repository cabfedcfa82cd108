"""ASR recognizer adapter using DashScope qwen3-asr-flash.

The qwen3-asr-flash model accepts complete audio (file path, URL, or base64)
and streams back recognition results via ``stream=True``.  Each flushed
utterance is wrapped in a WAV container, sent as base64, and the latest
streamed text is returned once the stream is exhausted.
"""

from __future__ import annotations

import base64
import io
import logging
import os
import wave

from errors import ASR_PROTOCOL_ERROR, AUTH_FAILED, NETWORK_ERROR, RecognitionError
from models import SAMPLE_RATE, TARGET_CHANNELS

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = SAMPLE_RATE,
    channels: int = TARGET_CHANNELS,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV string."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    wav_bytes = buf.getvalue()
    return base64.b64encode(wav_bytes).decode("ascii")


class DashscopeRecognizer:
    def __init__(
        self,
        api_key: str,
        model: str = "qwen3-asr-flash",
        request_timeout_s: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._request_timeout_s = request_timeout_s

    def recognize(self, pcm_bytes: bytes) -> str:
        """Recognize 16 kHz 16-bit mono PCM; raises ``RecognitionError``."""
        if not pcm_bytes:
            return ""
        if dashscope is None:
            raise RecognitionError("dashscope is not installed", code=ASR_PROTOCOL_ERROR)

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            raise RecognitionError("No API key configured", code=AUTH_FAILED)

        wav_b64 = _pcm_to_wav_base64(pcm_bytes)
        latest_text = ""
        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": wav_b64}]},
                ],
                result_format="message",
                asr_options={"enable_itn": False},
                stream=True,
                timeout=self._request_timeout_s,
            )
            for chunk in response:
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
        except Exception as exc:
            raise self._to_error(exc) from exc

        logger.debug("recognized %d bytes -> %r", len(pcm_bytes), latest_text)
        return latest_text

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if isinstance(chunk, dict):
            output = chunk.get("output", {})
            choices = output.get("choices", [])
            if not choices:
                return ""
            message = choices[0].get("message", {})
            content = message.get("content", [])
            if not content:
                return ""
            value = content[0]
            if isinstance(value, dict):
                return str(value.get("text", ""))
        return ""

    def _to_error(self, exc: Exception) -> RecognitionError:
        """Map an SDK/network exception to a recognition error."""
        message = str(exc)
        low = message.lower()
        if "401" in low or "auth" in low or "api key" in low:
            return RecognitionError(message, code=AUTH_FAILED, retryable=False)
        if "timeout" in low or "network" in low or "connection" in low:
            return RecognitionError(message, code=NETWORK_ERROR, retryable=True)
        return RecognitionError(message, code=ASR_PROTOCOL_ERROR, retryable=True)
