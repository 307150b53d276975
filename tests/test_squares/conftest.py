"""Shared fixtures for square tests."""

from __future__ import annotations

import math
from typing import Callable

import pytest

from glycopaint.core.models import Square
from glycopaint.squares.grid import GridDescriptor


def _make_squares(
    counts: list[int],
    side: int | None = None,
    density_ratio: float = 5.0,
    variability: float = 1.0,
    r_squared: float = 0.9,
) -> list[Square]:
    side = side or math.isqrt(len(counts))
    return [
        Square(
            recording_name="r1",
            square_number=i,
            row=i // side,
            column=i % side,
            x0=0.0,
            y0=0.0,
            x1=1.0,
            y1=1.0,
            number_of_tracks=count,
            density_ratio=density_ratio,
            variability=variability,
            r_squared=r_squared,
        )
        for i, count in enumerate(counts)
    ]


@pytest.fixture
def make_squares() -> Callable[..., list[Square]]:
    """Factory for squares on a square grid with the given track counts."""
    return _make_squares


@pytest.fixture
def grid() -> GridDescriptor:
    return GridDescriptor()
