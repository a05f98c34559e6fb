from __future__ import annotations

import pytest

pytest.importorskip("tkinter")
pytest.importorskip("PIL.ImageTk")

from beacon_tracker.viewer import build_arg_parser, build_source, world_to_canvas  # noqa: E402
from beacon_tracker.simulator import SimulatedSource  # noqa: E402
from beacon_tracker.udp_source import UDPSource  # noqa: E402


def test_world_to_canvas_flips_y() -> None:
    assert world_to_canvas(1.0, 2.0, 10.0, (100.0, 100.0)) == (110, 80)
    assert world_to_canvas(-7.136, 8.429, 54.112, (0.0, 0.0)) == (-386, -456)


def test_build_source() -> None:
    assert isinstance(build_source("sim"), SimulatedSource)
    assert isinstance(build_source("udp"), UDPSource)


def test_arg_parser_defaults() -> None:
    args = build_arg_parser().parse_args([])

    assert args.source == "sim"
    assert args.channel is None
    assert args.map is None
    assert not args.start
