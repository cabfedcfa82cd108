"""Simple JSON-based config store."""

from __future__ import annotations

import json
from pathlib import Path

DEFAULT_MODEL = "qwen3-asr-flash"
DEFAULT_VAD_AGGRESSIVENESS = 2


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "vadscribe" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        self._update("api_key", key)

    def get_model(self) -> str:
        data = self._read_all()
        return str(data.get("model", DEFAULT_MODEL))

    def set_model(self, model: str) -> None:
        self._update("model", model)

    def get_device_name(self) -> str:
        data = self._read_all()
        return str(data.get("device_name", ""))

    def set_device_name(self, name: str) -> None:
        self._update("device_name", name)

    def get_vad_aggressiveness(self) -> int:
        data = self._read_all()
        try:
            return int(data.get("vad_aggressiveness", DEFAULT_VAD_AGGRESSIVENESS))
        except (TypeError, ValueError):
            return DEFAULT_VAD_AGGRESSIVENESS

    def set_vad_aggressiveness(self, level: int) -> None:
        self._update("vad_aggressiveness", int(level))

    def _update(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
