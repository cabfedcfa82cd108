"""Capture device enumeration through sounddevice."""

from __future__ import annotations

from errors import EnumerationError
from models import Device

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore


class SoundDeviceDirectory:
    """Lists input devices, all captured as 16-bit signed little-endian PCM.

    Every PortAudio input is reported, including one name exposed by several
    host APIs, and each ``Device`` keeps its index so it can be opened
    unambiguously.
    """

    def __init__(self, max_channels: int = 2) -> None:
        self._max_channels = max_channels

    def list(self) -> list[Device]:
        if sd is None:
            raise EnumerationError("sounddevice is not installed")
        try:
            infos = sd.query_devices()
            hostapis = sd.query_hostapis()
        except Exception as exc:
            raise EnumerationError(f"query_devices failed: {exc}") from exc

        devices: list[Device] = []
        for position, info in enumerate(infos):
            try:
                max_inputs = int(info.get("max_input_channels", 0))
            except (TypeError, ValueError):
                max_inputs = 0
            name = str(info.get("name") or "").strip()
            if max_inputs <= 0 or not name:
                continue
            devices.append(
                Device(
                    name=name,
                    sample_rate=int(float(info.get("default_samplerate") or 0)),
                    channels=min(max_inputs, self._max_channels),
                    bit_depth=16,
                    signed=True,
                    big_endian=False,
                    host_api=_host_api_name(hostapis, info.get("hostapi")),
                    index=int(info.get("index", position)),
                )
            )
        return devices


def _host_api_name(hostapis, hostapi_index) -> str:  # noqa: ANN001
    try:
        return str(hostapis[int(hostapi_index)]["name"])
    except (TypeError, ValueError, IndexError, KeyError):
        return ""
