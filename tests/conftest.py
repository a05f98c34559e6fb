from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "log.csv"


@pytest.fixture
def floor_image(tmp_path: Path) -> Path:
    path = tmp_path / "floor1.PNG"
    path.write_bytes(b"\x89PNG\r\n\x1a\nfake-image-bytes")
    return path


@pytest.fixture
def write_ini(tmp_path: Path):
    def _write(text: str, name: str = "map.ini") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
