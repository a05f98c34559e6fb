"""Sample devices and a scripted positioning source shared by the suites."""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from beacon_tracker.errors import SourceUnavailable
from beacon_tracker.models import DeviceList, DeviceType, SourceDevice
from beacon_tracker.source import PositioningSource


def hedgehog(address: int, x_mm: int = 0, y_mm: int = 0, quality: int = 100, t: float = 0.0) -> SourceDevice:
    return SourceDevice(
        address=address,
        device_type=DeviceType.BEACON_HW_V49_HEDGEHOG,
        x_mm=x_mm,
        y_mm=y_mm,
        z_mm=500,
        quality=quality,
        update_time=t,
    )


def beacon(address: int, x_mm: int = 0, y_mm: int = 0, quality: int = 100, t: float = 0.0) -> SourceDevice:
    return SourceDevice(
        address=address,
        device_type=DeviceType.SUPER_BEACON,
        x_mm=x_mm,
        y_mm=y_mm,
        z_mm=2000,
        quality=quality,
        update_time=t,
    )


class ScriptedSource(PositioningSource):
    """Replays refresh batches, then fails like an unplugged modem.

    ``exhausted_error`` is raised once the batches run out; ``open_error``
    replaces the result of ``open``.
    """

    name = "scripted"

    def __init__(
        self,
        initial: Iterable[SourceDevice] = (),
        batches: Iterable[Iterable[SourceDevice]] = (),
        fail_open: bool = False,
        fail_list: bool = False,
        exhausted_error: Optional[Exception] = None,
        open_error: Optional[Exception] = None,
    ):
        self.initial = list(initial)
        self.batches: List[List[SourceDevice]] = [list(batch) for batch in batches]
        self.fail_open = fail_open
        self.fail_list = fail_list
        self.exhausted_error = exhausted_error
        self.open_error = open_error
        self.opened: Optional[Any] = None
        self.closed = False
        self.refresh_calls = 0

    def open(self, channel: Any) -> Any:
        if self.open_error is not None:
            raise self.open_error
        if self.fail_open:
            raise SourceUnavailable("port not found", operation="open")
        self.opened = channel
        return channel

    def list_devices(self, handle: Any) -> DeviceList:
        if self.fail_list:
            raise SourceUnavailable("no modem", operation="list_devices")
        return DeviceList([SourceDevice(**vars(device)) for device in self.initial])

    def refresh(self, device_list: DeviceList) -> None:
        self.refresh_calls += 1
        if not self.batches:
            if self.exhausted_error is not None:
                raise self.exhausted_error
            raise SourceUnavailable("link lost", operation="refresh")
        device_list.items = [SourceDevice(**vars(device)) for device in self.batches.pop(0)]

    def close(self, handle: Any) -> None:
        self.closed = True
