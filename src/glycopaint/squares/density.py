"""Density, density ratio and variability of squares."""

from __future__ import annotations

import numpy as np

from glycopaint.squares.grid import GridDescriptor


def calculate_density(
    track_count: float,
    area: float,
    duration_seconds: float,
    concentration: float,
) -> float:
    """Tracks per unit area per second per unit concentration.

    Raises:
        ValueError: If area, duration or concentration is not > 0.
    """
    for name, value in (
        ("area", area),
        ("duration_seconds", duration_seconds),
        ("concentration", concentration),
    ):
        if not value > 0:
            raise ValueError(f"{name} must be > 0, got {value}")
    return track_count / area / duration_seconds / concentration


def calculate_density_ratio(track_count: float, background: float) -> float:
    """Track count relative to the background mean; 0 without background."""
    if not background:
        return 0.0
    return track_count / background


def calculate_variability(
    xs: np.ndarray,
    ys: np.ndarray,
    square_number: int,
    grid: GridDescriptor,
    granularity: int = 10,
) -> float:
    """Coefficient of variation of track counts inside one square.

    The square is divided into ``granularity x granularity`` sub-cells and
    the tracks (by location) are counted per sub-cell. Returns the
    population standard deviation of the counts over their mean, or 0 when
    the square is empty.
    """
    if granularity <= 0:
        raise ValueError(f"granularity must be > 0, got {granularity}")
    row, col, _, _, _, _ = grid.cell(square_number)
    width = grid.square_width
    height = grid.square_height
    x0 = col * width
    y0 = row * height

    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    xi = np.floor((xs - x0) / width * granularity).astype(int)
    yi = np.floor((ys - y0) / height * granularity).astype(int)
    inside = (xi >= 0) & (xi < granularity) & (yi >= 0) & (yi < granularity)

    matrix = np.zeros((granularity, granularity), dtype=float)
    np.add.at(matrix, (yi[inside], xi[inside]), 1)

    mean = matrix.mean()
    if mean == 0:
        return 0.0
    return float(matrix.std() / mean)
