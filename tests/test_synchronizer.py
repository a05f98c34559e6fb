from __future__ import annotations

from pathlib import Path
from typing import List

from beacon_tracker.models import DeviceRecord, TrackingState
from beacon_tracker.registry import DeviceRegistry
from beacon_tracker.synchronizer import TrackingSynchronizer

from helpers import ScriptedSource, beacon, hedgehog


def _synchronizer(source: ScriptedSource, log_path: Path, **kwargs):
    registry = DeviceRegistry(log_path)
    messages: List[str] = []
    sync = TrackingSynchronizer(
        registry, source, channel="COM5", poll_interval_s=0.0, on_log=messages.append, **kwargs
    )
    return registry, sync, messages


def test_seeds_registry_from_discovered_devices(log_path: Path) -> None:
    source = ScriptedSource(initial=[beacon(1, 1500, 2500, quality=0), hedgehog(7, -250, 0, quality=40)])
    registry, sync, _ = _synchronizer(source, log_path)

    assert sync.start() is True
    sync.join(timeout=5)

    assert source.opened == "COM5"
    assert registry.snapshot() == [
        DeviceRecord(address=1, is_mobile_tag=False, x=1.5, y=2.5, quality=0),
        DeviceRecord(address=7, is_mobile_tag=True, x=-0.25, y=0.0, quality=40),
    ]


def test_start_twice_launches_one_loop(log_path: Path) -> None:
    source = ScriptedSource(initial=[hedgehog(7)])
    registry, sync, _ = _synchronizer(source, log_path)

    assert sync.start() is True
    assert sync.start() is False
    sync.join(timeout=5)

    assert source.refresh_calls == 1
    assert len(registry) == 1


def test_open_failure_halts_without_retry(log_path: Path) -> None:
    source = ScriptedSource(fail_open=True)
    registry, sync, messages = _synchronizer(source, log_path)

    sync.start()
    sync.join(timeout=5)

    assert registry.tracking_state is TrackingState.HALTED
    assert "port not found" in registry.halt_reason
    assert any("tracking halted" in message for message in messages)
    assert source.refresh_calls == 0
    assert sync.start() is False


def test_list_failure_halts_and_closes(log_path: Path) -> None:
    source = ScriptedSource(fail_list=True)
    registry, sync, _ = _synchronizer(source, log_path)

    sync.start()
    sync.join(timeout=5)

    assert registry.tracking_state is TrackingState.HALTED
    assert source.closed


def test_refresh_failure_keeps_last_known_coordinates(log_path: Path) -> None:
    source = ScriptedSource(
        initial=[hedgehog(7, quality=0)],
        batches=[[hedgehog(7, 1000, 2000, quality=90, t=1.0)]],
    )
    registry, sync, messages = _synchronizer(source, log_path)

    sync.start()
    sync.join(timeout=5)

    assert registry.tracking_state is TrackingState.HALTED
    assert registry.snapshot() == [DeviceRecord(address=7, is_mobile_tag=True, x=1.0, y=2.0, quality=90)]
    assert "link lost" in messages[-1]
    assert source.closed


def test_zero_quality_and_unknown_updates_are_ignored(log_path: Path) -> None:
    source = ScriptedSource(
        initial=[hedgehog(7, 100, 100, quality=50)],
        batches=[[hedgehog(7, 9000, 9000, quality=0, t=1.0), hedgehog(8, 5000, 5000, t=1.0)]],
    )
    registry, sync, _ = _synchronizer(source, log_path)

    sync.start()
    sync.join(timeout=5)

    assert registry.snapshot() == [DeviceRecord(address=7, is_mobile_tag=True, x=0.1, y=0.1, quality=50)]


def test_recording_dedups_on_watermark(log_path: Path) -> None:
    source = ScriptedSource(
        initial=[hedgehog(7), beacon(1)],
        batches=[
            [hedgehog(7, 1000, 1000, t=10.0), beacon(1, t=11.0)],
            [hedgehog(7, 1000, 1000, t=10.0), beacon(1, t=12.0)],
            [hedgehog(7, 1100, 1000, t=9.5)],
            [hedgehog(7, 1200, 1000, t=10.25)],
        ],
    )
    registry, sync, _ = _synchronizer(source, log_path)
    registry.begin_recording()

    sync.start()
    sync.join(timeout=5)
    registry.end_recording()

    assert log_path.read_text().splitlines() == [
        "address,x,y,z,q,t",
        "7,1000,1000,500,100,10000",
        "7,1200,1000,500,100,10250",
    ]
    assert registry.tracking_state is TrackingState.HALTED


def test_driver_error_during_refresh_halts(log_path: Path) -> None:
    source = ScriptedSource(
        initial=[hedgehog(7, quality=0)],
        batches=[[hedgehog(7, 3000, 4000, quality=80, t=1.0)]],
        exhausted_error=OSError("device reset"),
    )
    registry, sync, messages = _synchronizer(source, log_path)

    sync.start()
    sync.join(timeout=5)

    assert not sync._thread.is_alive()
    assert registry.tracking_state is TrackingState.HALTED
    assert "device reset" in registry.halt_reason
    assert any("tracking halted" in message for message in messages)
    assert registry.snapshot() == [DeviceRecord(address=7, is_mobile_tag=True, x=3.0, y=4.0, quality=80)]
    assert source.closed


def test_driver_error_during_open_halts(log_path: Path) -> None:
    source = ScriptedSource(open_error=ValueError("bad channel"))
    registry, sync, messages = _synchronizer(source, log_path)

    sync.start()
    sync.join(timeout=5)

    assert registry.tracking_state is TrackingState.HALTED
    assert "bad channel" in registry.halt_reason
    assert source.refresh_calls == 0
    assert not source.closed
