"""
Shared table of tracked devices, tracking run state and the CSV log sink.

Every access goes through one lock. Nothing here talks to the positioning
source, so the lock is never held across a source call.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, TextIO

from .config import RECORDING
from .errors import RecordingIoFailure
from .models import DeviceRecord, SourceDevice, TrackingState


@dataclass
class RefreshOutcome:
    """Result of merging one refreshed batch."""

    merged: int
    logged: int
    watermark: float
    recording_error: Optional[RecordingIoFailure] = None


class DeviceRegistry:
    """
    Concurrency-safe registry of device records.

    Records are created only by :meth:`seed`. Updates for addresses that
    were never seeded are dropped.
    """

    def __init__(self, log_path: str | Path = RECORDING["path"]):
        self.log_path = Path(log_path)
        self._lock = threading.Lock()
        self._devices: Dict[int, DeviceRecord] = {}
        self._state = TrackingState.NOT_STARTED
        self._halt_reason: Optional[str] = None
        self._sink: Optional[TextIO] = None

    # -- run state -------------------------------------------------------

    @property
    def tracking_state(self) -> TrackingState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        """True once tracking has been started, even after a halt."""
        with self._lock:
            return self._state is not TrackingState.NOT_STARTED

    @property
    def halt_reason(self) -> Optional[str]:
        with self._lock:
            return self._halt_reason

    def try_start(self) -> bool:
        """Latch NOT_STARTED -> RUNNING. Returns True for the one caller that wins."""
        with self._lock:
            if self._state is not TrackingState.NOT_STARTED:
                return False
            self._state = TrackingState.RUNNING
            return True

    def mark_halted(self, reason: str) -> None:
        with self._lock:
            if self._state is TrackingState.RUNNING:
                self._state = TrackingState.HALTED
                self._halt_reason = reason

    # -- devices ---------------------------------------------------------

    def seed(self, devices: Iterable[DeviceRecord]) -> None:
        """Add new devices; refresh coordinates of ones already known."""
        with self._lock:
            for device in devices:
                existing = self._devices.get(device.address)
                if existing is None:
                    self._devices[device.address] = device.copy()
                    continue
                existing.x = device.x
                existing.y = device.y
                existing.quality = device.quality

    def _merge_locked(self, address: int, x: float, y: float, quality: int) -> bool:
        if quality <= 0:
            return False
        record = self._devices.get(address)
        if record is None:
            return False
        record.x = x
        record.y = y
        record.quality = quality
        return True

    def merge_update(self, address: int, x: float, y: float, quality: int) -> bool:
        """Overwrite a known device's fix. No-op without a fix or for unknown devices."""
        with self._lock:
            return self._merge_locked(address, x, y, quality)

    def snapshot(self) -> List[DeviceRecord]:
        with self._lock:
            return [device.copy() for device in self._devices.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    # -- recording -------------------------------------------------------

    @property
    def is_recording(self) -> bool:
        with self._lock:
            return self._sink is not None

    def begin_recording(self) -> None:
        """(Re)create the log file and write the header row."""
        with self._lock:
            self._close_sink_locked()
            try:
                sink = open(self.log_path, "w", encoding="utf-8", newline="")
            except OSError as exc:
                raise RecordingIoFailure(
                    f"failed to create {self.log_path}: {exc}", path=self.log_path
                ) from exc
            try:
                sink.write(RECORDING["header"] + "\n")
                sink.flush()
            except OSError as exc:
                sink.close()
                raise RecordingIoFailure(
                    f"failed to write {self.log_path}: {exc}", path=self.log_path
                ) from exc
            self._sink = sink

    def end_recording(self) -> None:
        with self._lock:
            self._close_sink_locked()

    def _close_sink_locked(self) -> None:
        if self._sink is None:
            return
        sink, self._sink = self._sink, None
        try:
            sink.close()
        except OSError as exc:
            print(f"[Registry] Failed to close {self.log_path}: {exc}")

    # -- synchronizer step -----------------------------------------------

    def apply_refresh(self, samples: Iterable[SourceDevice], watermark: float) -> RefreshOutcome:
        """
        Merge a refreshed batch and log qualifying samples in one critical section.

        Only mobile tags are logged, and only when their update time is
        strictly newer than ``watermark``. The watermark is shared by all
        devices. A write failure ends recording; merging still completes.
        """
        merged = 0
        logged = 0
        error: Optional[RecordingIoFailure] = None

        with self._lock:
            for sample in samples:
                if sample.quality <= 0:
                    continue

                if self._merge_locked(
                    sample.address, sample.x_mm / 1000.0, sample.y_mm / 1000.0, sample.quality
                ):
                    merged += 1

                if self._sink is None:
                    continue
                if not sample.is_mobile_tag:
                    continue
                if sample.update_time <= watermark:
                    continue

                try:
                    self._sink.write(sample.to_log_row())
                    self._sink.flush()
                except OSError as exc:
                    error = RecordingIoFailure(
                        f"failed to write {self.log_path}: {exc}", path=self.log_path
                    )
                    self._close_sink_locked()
                    continue

                logged += 1
                watermark = sample.update_time

        return RefreshOutcome(merged=merged, logged=logged, watermark=watermark, recording_error=error)
