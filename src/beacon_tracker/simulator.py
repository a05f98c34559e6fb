"""
Simulated positioning source: fixed beacons and hedgehogs driving circles.
"""

from __future__ import annotations

import math
import time
from typing import Any, Callable, Optional

import numpy as np

from .config import SIMULATION
from .errors import SourceUnavailable
from .models import DeviceList, DeviceType, SourceDevice
from .source import PositioningSource


class SimulatedSource(PositioningSource):
    """
    Stand-in for the hardware driver.

    Hedgehogs produce a new fix at ``update_rate_hz``; refreshes in between
    return the previous fix with an unchanged update time. A fraction of
    fixes is reported with quality 0. ``fail_after`` makes the n-th refresh
    raise, which is how a pulled USB cable looks to the tracker.
    """

    name = "simulator"

    def __init__(
        self,
        settings: dict = SIMULATION,
        fail_after: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.fail_after = fail_after
        self._clock = clock
        self._rng = np.random.default_rng(settings["seed"])
        self._refreshes = 0
        self._start_time: Optional[float] = None
        self._last_fix_time: dict[int, float] = {}
        self._is_open = False

    def open(self, channel: Any) -> Any:
        self._is_open = True
        self._start_time = self._clock()
        print(f"[Sim] Opened channel {channel}")
        return channel

    def list_devices(self, handle: Any) -> DeviceList:
        if not self._is_open:
            raise SourceUnavailable("simulator channel is not open", operation="list_devices")

        now = self._clock()
        items = []
        for beacon in self.settings["beacons"]:
            x, y, z = beacon["position_mm"]
            items.append(
                SourceDevice(
                    address=beacon["address"],
                    device_type=DeviceType.SUPER_BEACON,
                    x_mm=x,
                    y_mm=y,
                    z_mm=z,
                    quality=100,
                    update_time=now,
                )
            )
        for hedgehog in self.settings["hedgehogs"]:
            device = SourceDevice(
                address=hedgehog["address"],
                device_type=DeviceType.SUPER_BEACON_HEDGEHOG,
                z_mm=hedgehog["height_mm"],
            )
            self._move(device, hedgehog, now)
            items.append(device)
        return DeviceList(items)

    def refresh(self, device_list: DeviceList) -> None:
        if not self._is_open:
            raise SourceUnavailable("simulator channel is not open", operation="refresh")

        self._refreshes += 1
        if self.fail_after is not None and self._refreshes > self.fail_after:
            raise SourceUnavailable("simulated link loss", operation="refresh")

        now = self._clock()
        period = 1.0 / self.settings["update_rate_hz"]
        for hedgehog in self.settings["hedgehogs"]:
            device = device_list.find(hedgehog["address"])
            if device is None:
                continue
            last = self._last_fix_time.get(device.address)
            if last is not None and now - last < period:
                continue
            self._move(device, hedgehog, now)

    def close(self, handle: Any) -> None:
        self._is_open = False
        print(f"[Sim] Closed channel {handle}")

    def _move(self, device: SourceDevice, hedgehog: dict, now: float) -> None:
        elapsed = now - (self._start_time or now)
        radius = hedgehog["radius_m"]
        angular_speed = hedgehog["speed_m_s"] / radius
        # Spread hedgehogs around the circle by address
        phase = elapsed * angular_speed + device.address

        cx, cy = self.settings["center_m"]
        noise = self._rng.normal(0.0, self.settings["position_noise_std_m"], size=2)
        x = cx + radius * math.cos(phase) + noise[0]
        y = cy + radius * math.sin(phase) + noise[1]

        device.x_mm = int(round(x * 1000))
        device.y_mm = int(round(y * 1000))
        if self._rng.random() < self.settings["dropout_probability"]:
            device.quality = 0
        else:
            device.quality = int(self._rng.integers(60, 101))
        device.update_time = now
        self._last_fix_time[device.address] = now
