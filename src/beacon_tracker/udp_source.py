"""
UDP positioning source fed by the vendor host software.
"""

from __future__ import annotations

import json
import queue
import socket
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

from .config import NETWORK
from .errors import SourceUnavailable
from .models import DeviceList, DeviceType, SourceDevice
from .source import PositioningSource

FIX_QUALITY = 100  # The feed has no quality field; a received fix is a good fix


class UDPSource(PositioningSource):
    """
    Positioning source for JSON position datagrams.

    Expected data format (coordinates in meters):
    {
        "Command": "UpLink",
        "TagID": 0,
        "X": 1.089,
        "Y": 1.056,
        "Z": 1.539
    }

    Tags heard during the discovery window become mobile tags; fixed
    anchors can be supplied up front since the feed never reports them.
    The channel passed to open() is the UDP port.
    """

    name = "udp"

    def __init__(
        self,
        host: str = NETWORK["host"],
        discovery_s: float = NETWORK["discovery_s"],
        anchors: Iterable[dict] = (),
    ):
        self.host = host
        self.discovery_s = discovery_s
        self.anchors = list(anchors)
        self._socket: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._data_queue: queue.Queue[SourceDevice] = queue.Queue(maxsize=1000)
        self._receive_error: Optional[str] = None

    def open(self, channel: Any) -> Any:
        try:
            port = int(channel)
        except (TypeError, ValueError) as e:
            raise SourceUnavailable(f"invalid udp port: {channel!r}", operation="open") from e

        try:
            self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            self._socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._socket.bind((self.host, port))
            self._socket.settimeout(0.5)
        except OSError as e:
            if self._socket:
                self._socket.close()
                self._socket = None
            raise SourceUnavailable(
                f"failed to listen on {self.host}:{port}: {e}", operation="open"
            ) from e

        self._stop_event.clear()
        self._receive_error = None
        self._thread = threading.Thread(target=self._receive_loop, daemon=True)
        self._thread.start()
        print(f"[UDP] Listening on {self.host}:{port}")
        return port

    def list_devices(self, handle: Any) -> DeviceList:
        if self._socket is None:
            raise SourceUnavailable("udp channel is not open", operation="list_devices")

        deadline = time.monotonic() + self.discovery_s
        tags: Dict[int, SourceDevice] = {}
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                sample = self._data_queue.get(timeout=min(remaining, 0.1))
            except queue.Empty:
                continue
            tags[sample.address] = sample
        self._check_receiver("list_devices")

        items: List[SourceDevice] = []
        for anchor in self.anchors:
            x, y, z = anchor["position_mm"]
            items.append(
                SourceDevice(
                    address=anchor["address"],
                    device_type=DeviceType.SUPER_BEACON,
                    x_mm=x,
                    y_mm=y,
                    z_mm=z,
                )
            )
        items.extend(tags.values())
        print(f"[UDP] Discovered {len(tags)} tags")
        return DeviceList(items)

    def refresh(self, device_list: DeviceList) -> None:
        self._check_receiver("refresh")
        for sample in self.get_all_data():
            device = device_list.find(sample.address)
            if device is None:
                # Tags that appear after discovery are not tracked
                continue
            device.x_mm = sample.x_mm
            device.y_mm = sample.y_mm
            device.z_mm = sample.z_mm
            device.quality = sample.quality
            device.update_time = sample.update_time

    def close(self, handle: Any) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._socket:
            self._socket.close()
            self._socket = None
        print("[UDP] Stopped")

    def get_all_data(self) -> List[SourceDevice]:
        """Get all queued samples."""
        data_list = []
        while True:
            try:
                data_list.append(self._data_queue.get_nowait())
            except queue.Empty:
                break
        return data_list

    def _check_receiver(self, operation: str) -> None:
        if self._receive_error is not None:
            raise SourceUnavailable(self._receive_error, operation=operation)

    def _receive_loop(self) -> None:
        """Main receive loop running in background thread."""
        while not self._stop_event.is_set():
            try:
                data, _addr = self._socket.recvfrom(4096)
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stop_event.is_set():
                    self._receive_error = f"udp receive failed: {e}"
                    print(f"[UDP] Receive error: {e}")
                return
            sample = parse_datagram(data, time.time())
            if sample is not None:
                self._enqueue(sample)

    def _enqueue(self, sample: SourceDevice) -> None:
        try:
            self._data_queue.put_nowait(sample)
        except queue.Full:
            # Drop oldest data
            try:
                self._data_queue.get_nowait()
            except queue.Empty:
                pass
            self._data_queue.put_nowait(sample)


def parse_datagram(data: bytes, timestamp: float) -> Optional[SourceDevice]:
    """Turn one UpLink datagram into a source sample; None for anything else."""
    try:
        payload = json.loads(data.decode("utf-8").strip())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        print(f"[UDP] JSON decode error: {e}")
        return None

    if not isinstance(payload, dict) or payload.get("Command") != "UpLink":
        return None

    try:
        return SourceDevice(
            address=int(payload.get("TagID", 0)),
            device_type=DeviceType.SUPER_BEACON_HEDGEHOG,
            x_mm=int(round(float(payload.get("X", 0.0)) * 1000)),
            y_mm=int(round(float(payload.get("Y", 0.0)) * 1000)),
            z_mm=int(round(float(payload.get("Z", 0.0)) * 1000)),
            quality=FIX_QUALITY,
            update_time=timestamp,
        )
    except (TypeError, ValueError) as e:
        print(f"[UDP] Invalid position: {e}")
        return None
