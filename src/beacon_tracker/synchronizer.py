"""
Background loop that keeps the device registry in step with the source.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

from .config import SOURCE
from .errors import SourceUnavailable
from .models import DeviceList
from .registry import DeviceRegistry
from .source import PositioningSource


class TrackingSynchronizer:
    """
    Polls a positioning source and merges its reports into a registry.

    ``start()`` launches the loop at most once for the lifetime of the
    registry. The loop has no stop operation: it only ends when the source
    fails, which leaves the registry in the HALTED state with the last
    known coordinates intact. The daemon thread outlives the call that
    started it.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        source: PositioningSource,
        channel: Any = SOURCE["channel"],
        poll_interval_s: float = SOURCE["poll_interval_s"],
        on_log: Optional[Callable[[str], None]] = None,
    ):
        self.registry = registry
        self.source = source
        self.channel = channel
        self.poll_interval_s = poll_interval_s
        self._on_log = on_log
        self._thread: Optional[threading.Thread] = None

    def set_log_callback(self, callback: Callable[[str], None]) -> None:
        self._on_log = callback

    def start(self) -> bool:
        """Launch the loop unless it has already been started. Never blocks."""
        if not self.registry.try_start():
            return False

        self._thread = threading.Thread(
            target=self._run, name="tracking-synchronizer", daemon=True
        )
        self._thread.start()
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the loop to finish (only happens after a halt)."""
        if self._thread is not None:
            self._thread.join(timeout)

    def _report(self, message: str) -> None:
        if self._on_log is None:
            print(f"[Sync] {message}")
            return
        try:
            self._on_log(message)
        except Exception as e:
            print(f"[Sync] Log callback error: {e}")

    def _halt(self, exc: Exception) -> None:
        reason = f"tracking halted: {exc}"
        self.registry.mark_halted(reason)
        self._report(reason)

    def _call(self, operation: str, func, *args):
        """Run one source call, turning any driver error into SourceUnavailable."""
        try:
            return func(*args)
        except SourceUnavailable:
            raise
        except Exception as e:
            raise SourceUnavailable(
                f"{self.source.name} {operation} failed: {e!r}", operation=operation
            ) from e

    def _run(self) -> None:
        try:
            handle = self._call("open", self.source.open, self.channel)
        except SourceUnavailable as exc:
            self._halt(exc)
            return

        try:
            device_list = self._call("list_devices", self.source.list_devices, handle)
            self.registry.seed(device.to_record() for device in device_list.devices())
            self._report(
                f"{self.source.name}: tracking {len(device_list.devices())} devices"
            )
            self._poll(device_list)
        except SourceUnavailable as exc:
            self._halt(exc)
        except Exception as e:
            self._halt(SourceUnavailable(f"tracking loop failed: {e!r}"))
        finally:
            try:
                self._call("close", self.source.close, handle)
            except SourceUnavailable as exc:
                self._report(f"failed to close {self.source.name}: {exc}")

    def _poll(self, device_list: DeviceList) -> None:
        watermark = 0.0

        while True:
            # The only blocking call; made outside the registry lock
            self._call("refresh", self.source.refresh, device_list)

            outcome = self.registry.apply_refresh(device_list.devices(), watermark)
            watermark = outcome.watermark
            if outcome.recording_error is not None:
                self._report(f"recording stopped: {outcome.recording_error}")

            time.sleep(self.poll_interval_s)
