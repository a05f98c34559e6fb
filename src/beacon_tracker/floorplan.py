"""
Parser for the deployment INI file exported by the positioning dashboard.

A deployment file looks like::

    [floorplan]
    shift_x_m = -7.136
    shift_y_m = 8.429
    scale_pixels_per_m = 54.112
    Floor1_FILE = floor1.png

    [devices]
    beacon1 = 1
    beacon2 = 0

    [beacon 1]
    Hedgehog_mode = 0
    Position_X = 3.5
    Position_Y = 4.5

Only enabled, stationary beacons end up in the roster. Mobile tags are
discovered live by the positioning source.
"""

from __future__ import annotations

import configparser
from pathlib import Path
from typing import List, Tuple

from .config import FLOORPLAN_FORMAT
from .errors import ConfigIoFailure, ConfigMissingField, ConfigParseFailure
from .models import DeviceRecord, FloorplanDescriptor

MAX_ADDRESS = 255


def _load_ini(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None,
        strict=False,
        delimiters=("=",),
        allow_no_value=True,
    )
    # Section and key names are case-sensitive
    parser.optionxform = str
    try:
        with open(path, encoding="utf-8") as handle:
            parser.read_file(handle)
    except OSError as exc:
        raise ConfigIoFailure(f"failed to read {path}: {exc}", path=path) from exc
    except UnicodeDecodeError as exc:
        raise ConfigParseFailure(f"ini file {path} is not valid UTF-8: {exc}", path=path) from exc
    except configparser.Error as exc:
        raise ConfigParseFailure(f"malformed ini file {path}: {exc}", path=path) from exc
    return parser


def _section(parser: configparser.ConfigParser, name: str, path: Path) -> configparser.SectionProxy:
    if not parser.has_section(name):
        raise ConfigMissingField(f"no section: [{name}]", path=path, field=name)
    return parser[name]


def _value(section: configparser.SectionProxy, key: str, path: Path) -> str:
    value = section.get(key)
    if value is None or value.strip() == "":
        raise ConfigMissingField(f"no value: {key}", path=path, field=key)
    return value.strip()


def _float(section: configparser.SectionProxy, key: str, path: Path) -> float:
    raw = _value(section, key, path)
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigParseFailure(
            f"invalid number for {key}: {raw!r}", path=path, field=key
        ) from exc


def _read_floor_image(section: configparser.SectionProxy, path: Path) -> Tuple[bytes, str]:
    prefix = FLOORPLAN_FORMAT["floor_image_prefix"]
    for key, value in section.items():
        if not key.startswith(prefix):
            continue
        if not value or not value.strip():
            break

        image_path = Path(value.strip())
        if not image_path.is_absolute():
            image_path = path.parent / image_path
        try:
            data = image_path.read_bytes()
        except OSError as exc:
            raise ConfigIoFailure(
                f"failed to read floorplan image {image_path}: {exc}", path=image_path, field=key
            ) from exc

        extension = image_path.suffix[1:]
        if not extension:
            raise ConfigParseFailure(
                f"failed to read extension of {image_path}", path=path, field=key
            )
        if not data:
            break
        return data, extension

    raise ConfigMissingField("no value: FloorX_FILE", path=path, field="FloorX_FILE")


def _enabled_indices(section: configparser.SectionProxy, path: Path) -> List[str]:
    prefix = FLOORPLAN_FORMAT["beacon_prefix"]
    indices = []
    for key, value in section.items():
        if not key.startswith(prefix):
            continue
        raw = (value or "").strip()
        if not (raw.isascii() and raw.isdigit()):
            raise ConfigParseFailure(
                f"invalid enable flag for {key}: {raw!r}", path=path, field=key
            )
        if int(raw) != 1:
            continue
        indices.append(key[len(prefix):])
    return indices


def _parse_beacon(parser: configparser.ConfigParser, index: str, path: Path) -> DeviceRecord | None:
    name = FLOORPLAN_FORMAT["beacon_section"].format(index=index)
    beacon = _section(parser, name, path)

    if _value(beacon, "Hedgehog_mode", path) != FLOORPLAN_FORMAT["fixed_beacon_mode"]:
        return None

    x = _float(beacon, "Position_X", path)
    y = _float(beacon, "Position_Y", path)

    if not (index.isascii() and index.isdigit()) or int(index) > MAX_ADDRESS:
        raise ConfigParseFailure(
            f"invalid beacon address: {index!r}", path=path, field=name
        )

    return DeviceRecord(address=int(index), is_mobile_tag=False, x=x, y=y, quality=0)


def parse_floorplan(path: str | Path) -> Tuple[List[DeviceRecord], FloorplanDescriptor]:
    """Parse a deployment file into a static beacon roster and a floorplan.

    Raises a :class:`~beacon_tracker.errors.ConfigError` subclass on the
    first missing or malformed field; nothing is returned partially.
    """
    path = Path(path)
    parser = _load_ini(path)

    floorplan = _section(parser, FLOORPLAN_FORMAT["floorplan_section"], path)
    origin_x = _float(floorplan, "shift_x_m", path)
    origin_y = _float(floorplan, "shift_y_m", path)
    scale = _float(floorplan, "scale_pixels_per_m", path)
    image_bytes, extension = _read_floor_image(floorplan, path)

    descriptor = FloorplanDescriptor(
        origin_x=origin_x,
        origin_y=origin_y,
        scale_pixels_per_meter=scale,
        image_bytes=image_bytes,
        image_extension=extension,
    )

    devices_section = _section(parser, FLOORPLAN_FORMAT["devices_section"], path)
    devices: List[DeviceRecord] = []
    for index in _enabled_indices(devices_section, path):
        device = _parse_beacon(parser, index, path)
        if device is None:
            # Mobile-mode beacons are seeded live by the source
            continue
        devices.append(device)

    return devices, descriptor
