"""
Data models for tracked devices, source reports and the floorplan.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import List, Tuple


class DeviceType(enum.Enum):
    """Hardware type reported by the positioning source."""

    UNKNOWN = "unknown"
    BEACON_HW_V45 = "beacon_hw_v45"
    BEACON_HW_V45_HEDGEHOG = "beacon_hw_v45_hedgehog"
    BEACON_HW_V49 = "beacon_hw_v49"
    BEACON_HW_V49_HEDGEHOG = "beacon_hw_v49_hedgehog"
    SUPER_BEACON = "super_beacon"
    SUPER_BEACON_HEDGEHOG = "super_beacon_hedgehog"
    INDUSTRIAL_SUPER_BEACON = "industrial_super_beacon"
    INDUSTRIAL_SUPER_BEACON_HEDGEHOG = "industrial_super_beacon_hedgehog"
    MODEM_HW_V49 = "modem_hw_v49"

    @property
    def is_mobile_tag(self) -> bool:
        return self in MOBILE_TAG_TYPES


MOBILE_TAG_TYPES = frozenset(
    {
        DeviceType.SUPER_BEACON_HEDGEHOG,
        DeviceType.BEACON_HW_V45_HEDGEHOG,
        DeviceType.BEACON_HW_V49_HEDGEHOG,
        DeviceType.INDUSTRIAL_SUPER_BEACON_HEDGEHOG,
    }
)


class TrackingState(enum.Enum):
    """Run state of the tracking loop. HALTED is terminal."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    HALTED = "halted"


@dataclass
class DeviceRecord:
    """One tracked beacon or mobile tag, coordinates in meters."""

    address: int
    is_mobile_tag: bool
    x: float
    y: float
    quality: int = 0

    def copy(self) -> DeviceRecord:
        return replace(self)

    def to_payload(self) -> dict:
        return {
            "address": self.address,
            "is_hedge": self.is_mobile_tag,
            "x": self.x,
            "y": self.y,
            "q": self.quality,
        }


@dataclass
class SourceDevice:
    """A device as reported by the positioning source (raw millimeters)."""

    address: int
    device_type: DeviceType
    x_mm: int = 0
    y_mm: int = 0
    z_mm: int = 0
    quality: int = 0
    update_time: float = 0.0  # Seconds since the Unix epoch

    @property
    def is_mobile_tag(self) -> bool:
        return self.device_type.is_mobile_tag

    def to_record(self) -> DeviceRecord:
        return DeviceRecord(
            address=self.address,
            is_mobile_tag=self.is_mobile_tag,
            x=self.x_mm / 1000.0,
            y=self.y_mm / 1000.0,
            quality=self.quality,
        )

    def to_log_row(self) -> str:
        """CSV row of the recording file: raw millimeters, epoch milliseconds."""
        epoch_ms = int(self.update_time * 1000)
        return (
            f"{self.address},{self.x_mm},{self.y_mm},{self.z_mm},"
            f"{self.quality},{epoch_ms}\n"
        )


@dataclass
class DeviceList:
    """Devices discovered on an open channel; refreshed in place."""

    items: List[SourceDevice] = field(default_factory=list)

    def devices(self) -> Tuple[SourceDevice, ...]:
        return tuple(self.items)

    def find(self, address: int) -> SourceDevice | None:
        for device in self.items:
            if device.address == address:
                return device
        return None


@dataclass
class FloorplanDescriptor:
    """Offset, scale and image needed to draw devices over a floorplan."""

    origin_x: float
    origin_y: float
    scale_pixels_per_meter: float
    image_bytes: bytes = b""
    image_extension: str = ""

    def to_payload(self) -> dict:
        return {
            "x": self.origin_x,
            "y": self.origin_y,
            "scale_pixels_per_m": self.scale_pixels_per_meter,
            "data": list(self.image_bytes),
            "ext": self.image_extension,
        }
