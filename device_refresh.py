"""Single-flight device list refresh with change detection."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from errors import EnumerationError
from interfaces import DeviceDirectory
from models import Device, ErrorEvent, RefreshState

logger = logging.getLogger(__name__)

DevicesCallback = Callable[[list[Device]], None]
ClearedCallback = Callable[[], None]
ErrorCallback = Callable[[ErrorEvent], None]
StateCallback = Callable[[RefreshState, RefreshState], None]


class DeviceRefreshController:
    def __init__(
        self,
        directory: DeviceDirectory,
        on_devices: Optional[DevicesCallback] = None,
        on_selection_cleared: Optional[ClearedCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._directory = directory
        self._on_devices = on_devices
        self._on_selection_cleared = on_selection_cleared
        self._on_error = on_error
        self._on_state_change = on_state_change

        self._lock = threading.RLock()
        self._state = RefreshState.IDLE
        self._devices: list[Device] = []
        self._selected: Optional[Device] = None
        self._discard_result = False
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def devices(self) -> list[Device]:
        with self._lock:
            return list(self._devices)

    @property
    def selected(self) -> Optional[Device]:
        return self._selected

    def select(self, device: Optional[Device]) -> None:
        with self._lock:
            self._selected = device

    def request_refresh(self) -> bool:
        """Start an enumeration unless one is already running."""
        with self._lock:
            if self._state == RefreshState.REFRESHING:
                logger.debug("refresh already in flight, ignoring request")
                return False
            self._discard_result = False
            self._transition(RefreshState.REFRESHING)
            self._thread = threading.Thread(target=self._refresh, name="device-refresh", daemon=True)
            self._thread.start()
            return True

    def cancel(self) -> None:
        """Drop the result of the enumeration in flight, if any."""
        with self._lock:
            if self._state == RefreshState.REFRESHING:
                self._discard_result = True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the refresh in flight; True when none is left running."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def _refresh(self) -> None:
        devices: list[Device] = []
        error: Optional[EnumerationError] = None
        try:
            devices = list(self._directory.list())
        except EnumerationError as exc:
            error = exc
        except Exception as exc:
            error = EnumerationError(f"device listing failed: {exc}")

        changed = False
        cleared = False
        with self._lock:
            discard = self._discard_result
            if error is None and not discard and devices != self._devices:
                changed = True
                self._devices = devices
                if self._selected is not None and self._selected not in devices:
                    self._selected = None
                    cleared = True

        try:
            if discard:
                if error is not None:
                    logger.warning("cancelled device refresh failed: %s", error.message)
                else:
                    logger.debug("refresh cancelled, result discarded")
            elif error is not None:
                logger.warning("device refresh failed: %s", error.message)
                if self._on_error:
                    self._on_error(error.to_event())
            elif changed:
                logger.debug("device list changed: %d devices", len(devices))
                if self._on_devices:
                    self._on_devices(list(devices))
                if cleared and self._on_selection_cleared:
                    self._on_selection_cleared()
        finally:
            with self._lock:
                self._transition(RefreshState.IDLE)

    def _transition(self, to_state: RefreshState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
