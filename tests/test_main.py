from __future__ import annotations

import pytest

from main import build_parser, choose_device
from models import Device

DEVICES = [
    Device(name="Built-in Microphone", sample_rate=44100, channels=1),
    Device(name="USB Headset", sample_rate=48000, channels=1),
]


def test_choose_device_exact_then_substring() -> None:
    assert choose_device(DEVICES, "USB Headset") == DEVICES[1]
    assert choose_device(DEVICES, "built-in") == DEVICES[0]


def test_choose_device_defaults_to_first() -> None:
    assert choose_device(DEVICES, "") == DEVICES[0]


def test_choose_device_no_match() -> None:
    assert choose_device(DEVICES, "Bluetooth") is None
    assert choose_device([], "") is None


def test_parser_flags() -> None:
    args = build_parser().parse_args(["--device", "USB", "--decoupled", "--vad-aggressiveness", "3", "-v"])
    assert args.device == "USB"
    assert args.decoupled is True
    assert args.vad_aggressiveness == 3
    assert args.verbose is True
    assert args.list_devices is False


def test_parser_rejects_bad_aggressiveness() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--vad-aggressiveness", "7"])


class FakeDirectory:
    def list(self) -> list[Device]:
        return list(DEVICES)


class MemoryConfigStore:
    def __init__(self) -> None:
        self.values: dict[str, object] = {}

    def get_api_key(self) -> str:
        return str(self.values.get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        self.values["api_key"] = key

    def get_model(self) -> str:
        return str(self.values.get("model", "qwen3-asr-flash"))

    def set_model(self, model: str) -> None:
        self.values["model"] = model

    def get_device_name(self) -> str:
        return str(self.values.get("device_name", ""))

    def set_device_name(self, name: str) -> None:
        self.values["device_name"] = name

    def get_vad_aggressiveness(self) -> int:
        return int(self.values.get("vad_aggressiveness", 2))  # type: ignore[arg-type]

    def set_vad_aggressiveness(self, level: int) -> None:
        self.values["vad_aggressiveness"] = level


def test_list_devices_prints_and_stores_flags(monkeypatch, capsys) -> None:  # noqa: ANN001
    import main as main_mod

    monkeypatch.setattr(main_mod, "SoundDeviceDirectory", FakeDirectory)
    store = MemoryConfigStore()
    args = build_parser().parse_args(["--list-devices", "--api-key", "k", "--vad-aggressiveness", "1"])

    assert main_mod.App(args, config_store=store).run() == 0

    out = capsys.readouterr().out
    assert "Built-in Microphone\t44100 Hz\t1 ch" in out
    assert "USB Headset" in out
    assert store.values == {"api_key": "k", "vad_aggressiveness": 1}


def test_unknown_device_exits_with_error(monkeypatch, capsys) -> None:  # noqa: ANN001
    import main as main_mod

    monkeypatch.setattr(main_mod, "SoundDeviceDirectory", FakeDirectory)
    args = build_parser().parse_args(["--device", "Bluetooth"])

    assert main_mod.App(args, config_store=MemoryConfigStore()).run() == 1
    assert "No matching capture device" in capsys.readouterr().err


def test_module_logger_follows_module_name() -> None:
    import main as main_mod

    assert main_mod.logger.name == "main"


def test_list_devices_shows_host_api(monkeypatch, capsys) -> None:  # noqa: ANN001
    import main as main_mod

    class HostApiDirectory:
        def list(self) -> list[Device]:
            return [
                Device(name="Mic", sample_rate=44100, channels=1, host_api="MME", index=1),
                Device(name="Mic", sample_rate=48000, channels=1, host_api="Windows WASAPI", index=7),
            ]

    monkeypatch.setattr(main_mod, "SoundDeviceDirectory", HostApiDirectory)
    args = build_parser().parse_args(["--list-devices"])

    assert main_mod.App(args, config_store=MemoryConfigStore()).run() == 0

    out = capsys.readouterr().out.splitlines()
    assert out == ["Mic\t44100 Hz\t1 ch\tMME", "Mic\t48000 Hz\t1 ch\tWindows WASAPI"]
