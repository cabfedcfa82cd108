from __future__ import annotations

from pathlib import Path

from config import JsonConfigStore


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    assert store.get_api_key() == ""
    assert store.get_model() == "qwen3-asr-flash"
    assert store.get_device_name() == ""
    assert store.get_vad_aggressiveness() == 2

    store.set_api_key("abc")
    store.set_model("qwen3-asr-plus")
    store.set_device_name("USB Mic")
    store.set_vad_aggressiveness(3)

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_api_key() == "abc"
    assert reloaded.get_model() == "qwen3-asr-plus"
    assert reloaded.get_device_name() == "USB Mic"
    assert reloaded.get_vad_aggressiveness() == 3


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_api_key() == ""
    assert store.get_device_name() == ""


def test_config_non_object_and_bad_values_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert JsonConfigStore(path=path).get_model() == "qwen3-asr-flash"

    path.write_text('{"vad_aggressiveness": "loud"}', encoding="utf-8")
    assert JsonConfigStore(path=path).get_vad_aggressiveness() == 2
