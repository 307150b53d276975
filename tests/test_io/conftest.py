"""Shared fixtures for io module tests."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Callable

import pytest


def _write_csv(path: Path, header: list[str], n_rows: int, start: int = 0) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for i in range(start, start + n_rows):
            writer.writerow([str(i), str(i * 10)])
    return path


@pytest.fixture
def make_csv() -> Callable[..., Path]:
    """Factory writing a two-column CSV with numbered rows."""
    return _write_csv


@pytest.fixture
def track_files(tmp_path: Path) -> list[Path]:
    """Three track files with header a,b and 10, 5 and 7 rows."""
    return [
        _write_csv(tmp_path / "r1-tracks.csv", ["a", "b"], 10, 0),
        _write_csv(tmp_path / "r2-tracks.csv", ["a", "b"], 5, 100),
        _write_csv(tmp_path / "r3-tracks.csv", ["a", "b"], 7, 200),
    ]
