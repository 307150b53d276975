"""Tests for density, density ratio and variability."""

from __future__ import annotations

import numpy as np
import pytest

from glycopaint.squares.density import (
    calculate_density,
    calculate_density_ratio,
    calculate_variability,
)
from glycopaint.squares.grid import GridDescriptor


class TestDensity:
    def test_density(self) -> None:
        assert calculate_density(100, 4.0, 100.0, 0.5) == pytest.approx(0.5)

    @pytest.mark.parametrize("area,duration,concentration", [
        (0.0, 100.0, 1.0),
        (1.0, 0.0, 1.0),
        (1.0, 100.0, -1.0),
    ])
    def test_non_positive_divisor(self, area, duration, concentration) -> None:
        with pytest.raises(ValueError, match="must be > 0"):
            calculate_density(10, area, duration, concentration)

    def test_density_ratio(self) -> None:
        assert calculate_density_ratio(10, 2.5) == 4.0
        assert calculate_density_ratio(10, 0.0) == 0.0


class TestVariability:
    @pytest.fixture
    def unit_grid(self) -> GridDescriptor:
        return GridDescriptor(number_of_squares=4, image_width=20.0, image_height=20.0)

    def test_empty_square(self, unit_grid: GridDescriptor) -> None:
        assert calculate_variability(np.array([]), np.array([]), 0, unit_grid) == 0.0

    def test_uniform_coverage(self, unit_grid: GridDescriptor) -> None:
        """One track per sub-cell has no variation."""
        centres = np.arange(10) + 0.5
        xs, ys = np.meshgrid(centres, centres)
        value = calculate_variability(xs.ravel(), ys.ravel(), 0, unit_grid)
        assert value == pytest.approx(0.0)

    def test_single_cluster(self, unit_grid: GridDescriptor) -> None:
        """All tracks in one of 100 sub-cells: std/mean = sqrt(99)."""
        xs = np.full(5, 10.5)
        ys = np.full(5, 0.5)
        value = calculate_variability(xs, ys, 1, unit_grid)
        assert value == pytest.approx(np.sqrt(99))

    def test_tracks_outside_square_ignored(self, unit_grid: GridDescriptor) -> None:
        xs = np.array([10.5, 0.5])
        ys = np.array([0.5, 0.5])
        assert calculate_variability(xs, ys, 1, unit_grid) == pytest.approx(np.sqrt(99))

    def test_bad_granularity(self, unit_grid: GridDescriptor) -> None:
        with pytest.raises(ValueError):
            calculate_variability(np.array([1.0]), np.array([1.0]), 0, unit_grid, granularity=0)
