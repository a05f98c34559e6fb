"""
Operations exposed to the presentation layer.

Errors never cross this boundary as exceptions: they are turned into log
messages and empty results.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .config import RECORDING
from .errors import ConfigError, RecordingIoFailure
from .floorplan import parse_floorplan
from .models import DeviceRecord, FloorplanDescriptor, TrackingState
from .registry import DeviceRegistry
from .source import PositioningSource
from .synchronizer import TrackingSynchronizer

LogListener = Callable[[str], None]


class CommandSurface:
    """Owns the registry and synchronizer for the lifetime of the process."""

    def __init__(
        self,
        source: PositioningSource,
        log_path: str | Path = RECORDING["path"],
        registry: Optional[DeviceRegistry] = None,
        **synchronizer_options,
    ):
        self._listeners: List[LogListener] = []
        self._listeners_lock = threading.Lock()
        self.registry = registry if registry is not None else DeviceRegistry(log_path)
        self.synchronizer = TrackingSynchronizer(
            self.registry, source, on_log=self.emit_log, **synchronizer_options
        )

    def subscribe(self, listener: LogListener) -> None:
        """Register a callback for log messages (called from any thread)."""
        with self._listeners_lock:
            self._listeners.append(listener)

    def emit_log(self, message: str) -> None:
        print(f"[Tracker] {message}")
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(message)
            except Exception as e:
                print(f"[Tracker] Log listener error: {e}")

    def start_tracking(self) -> None:
        if self.synchronizer.start():
            self.emit_log("tracking started")

    def read_devices(self) -> List[DeviceRecord]:
        return self.registry.snapshot()

    def load_configuration(
        self, path: str | Path
    ) -> Tuple[List[DeviceRecord], Optional[FloorplanDescriptor]]:
        try:
            devices, descriptor = parse_floorplan(path)
        except ConfigError as exc:
            self.emit_log(f"failed to parse ini map file: {exc}")
            return [], None

        self.registry.seed(devices)
        self.emit_log(f"loaded {path}: {len(devices)} beacons")
        return devices, descriptor

    def begin_recording(self) -> bool:
        try:
            self.registry.begin_recording()
        except RecordingIoFailure as exc:
            self.emit_log(f"failed to start recording: {exc}")
            return False
        self.emit_log(f"recording to {self.registry.log_path}")
        return True

    def end_recording(self) -> bool:
        was_recording = self.registry.is_recording
        self.registry.end_recording()
        if was_recording:
            self.emit_log("recording stopped")
        return was_recording

    def tracking_status(self) -> TrackingState:
        return self.registry.tracking_state

    @property
    def halt_reason(self) -> Optional[str]:
        return self.registry.halt_reason
