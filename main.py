"""Command-line entrypoint."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import Optional, Sequence

from config import JsonConfigStore
from device_refresh import DeviceRefreshController
from devices import SoundDeviceDirectory
from interfaces import ConfigStore
from models import Device, ErrorEvent, SessionState
from recognizer import DashscopeRecognizer
from recorder import SoundDeviceCaptureProvider
from session_controller import CaptureSessionController
from vad import WebRtcVadDetector

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vadscribe",
        description="Live, voice-activity-gated transcription from a capture device.",
    )
    parser.add_argument("--list-devices", action="store_true", help="print capture devices and exit")
    parser.add_argument("--device", help="capture device name (default: last used, then first found)")
    parser.add_argument("--api-key", help="DashScope API key (stored for next runs)")
    parser.add_argument("--model", help="recognition model name")
    parser.add_argument("--vad-aggressiveness", type=int, choices=range(0, 4), help="WebRTC VAD mode 0-3")
    parser.add_argument(
        "--decoupled",
        action="store_true",
        help="recognize on a background worker instead of pausing capture",
    )
    parser.add_argument(
        "--refresh-interval",
        type=float,
        default=5.0,
        help="seconds between device list refreshes while capturing",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="enable debug logging")
    return parser


def choose_device(devices: Sequence[Device], name: str) -> Optional[Device]:
    if not devices:
        return None
    if name:
        for device in devices:
            if device.name == name:
                return device
        lowered = name.lower()
        for device in devices:
            if lowered in device.name.lower():
                return device
        return None
    return devices[0]


class App:
    def __init__(self, args: argparse.Namespace, config_store: Optional[ConfigStore] = None) -> None:
        self.args = args
        self.config_store = config_store or JsonConfigStore()
        if args.api_key:
            self.config_store.set_api_key(args.api_key)
        if args.model:
            self.config_store.set_model(args.model)
        if args.vad_aggressiveness is not None:
            self.config_store.set_vad_aggressiveness(args.vad_aggressiveness)

        self._done = threading.Event()
        self.refresh = DeviceRefreshController(
            SoundDeviceDirectory(),
            on_selection_cleared=self._on_selection_cleared,
            on_error=self._on_error,
        )
        self.controller: Optional[CaptureSessionController] = None

    def _build_controller(self) -> CaptureSessionController:
        controller = CaptureSessionController(
            capture_provider=SoundDeviceCaptureProvider(),
            detector=WebRtcVadDetector(aggressiveness=self.config_store.get_vad_aggressiveness()),
            recognizer=DashscopeRecognizer(
                api_key=self.config_store.get_api_key(),
                model=self.config_store.get_model(),
            ),
            decoupled_recognition=self.args.decoupled,
            on_state_change=self._on_state_change,
            on_error=self._on_error,
        )
        controller.transcript.subscribe(self._on_transcript)
        return controller

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _on_transcript(self, text: str) -> None:
        print(text, flush=True)

    def _on_error(self, event: ErrorEvent) -> None:
        print(f"[{event.origin}] {event.code}: {event.message}", file=sys.stderr, flush=True)

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        if to_state == SessionState.IDLE and not self._done.is_set():
            logger.info("capture stopped")
            self._done.set()

    def _on_selection_cleared(self) -> None:
        logger.info("selected device disappeared")
        if self.controller is not None:
            threading.Thread(target=self.controller.select_device, args=(None,), daemon=True).start()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def list_devices(self) -> list[Device]:
        self.refresh.request_refresh()
        self.refresh.wait()
        return self.refresh.devices

    def run(self) -> int:
        devices = self.list_devices()
        if self.args.list_devices:
            for device in devices:
                print(f"{device.name}\t{device.sample_rate} Hz\t{device.channels} ch\t{device.host_api}".rstrip())
            return 0

        if self.args.device:
            device = choose_device(devices, self.args.device)
        else:
            device = choose_device(devices, self.config_store.get_device_name()) or choose_device(devices, "")
        if device is None:
            print("No matching capture device found.", file=sys.stderr)
            return 1
        self.config_store.set_device_name(device.name)
        self.refresh.select(device)

        self.controller = self._build_controller()
        logger.info("listening on %s (Ctrl-C to stop)", device.name)
        self.controller.select_device(device)
        try:
            # Re-enumerate periodically so an unplugged device stops capture.
            while not self._done.wait(timeout=self.args.refresh_interval):
                self.refresh.request_refresh()
        except KeyboardInterrupt:
            pass
        finally:
            self.quit()
        return 0

    def quit(self) -> None:
        self._done.set()
        if self.controller is not None:
            self.controller.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = App(args)
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
