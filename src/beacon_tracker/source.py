"""
Interface to the positioning hardware driver.

The synchronizer only needs four calls: open a channel, list the devices
on it, refresh their last locations in place, and close it again. Each
call may block on I/O and raises SourceUnavailable on failure.
"""

from __future__ import annotations

from typing import Any

from .models import DeviceList


class PositioningSource:
    """Base class for positioning sources."""

    name = "source"

    def open(self, channel: Any) -> Any:
        """Open a channel and return a handle for list_devices()."""
        raise NotImplementedError

    def list_devices(self, handle: Any) -> DeviceList:
        """Return the devices known on an open channel."""
        raise NotImplementedError

    def refresh(self, device_list: DeviceList) -> None:
        """Update the last locations in ``device_list`` in place."""
        raise NotImplementedError

    def close(self, handle: Any) -> None:
        """Release the channel. Sources without resources do nothing."""
