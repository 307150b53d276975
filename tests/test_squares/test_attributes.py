"""Tests for per-square and per-recording statistics."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from glycopaint.core.config import GenerateSquaresConfig
from glycopaint.core.models import ExperimentInfo, Recording
from glycopaint.squares.attributes import (
    compute_recording_attributes,
    compute_square_attributes,
    median_of_extreme_tracks,
)
from glycopaint.squares.grid import GridDescriptor


def _tracks(square_number: int, x: float, y: float, durations: list[float]) -> pd.DataFrame:
    n = len(durations)
    return pd.DataFrame({
        "Square Number": [float(square_number)] * n,
        "Track Duration": durations,
        "Track X Location": [x] * n,
        "Track Y Location": [y] * n,
        "Diffusion Coefficient": np.linspace(0.1, 0.3, n),
        "Diffusion Coefficient Ext": np.linspace(0.2, 0.4, n),
        "Track Displacement": np.linspace(1.0, 2.0, n),
        "Track Max Speed": np.linspace(3.0, 5.0, n),
        "Track Median Speed": np.linspace(1.0, 3.0, n),
    })


@pytest.fixture
def small_grid() -> GridDescriptor:
    return GridDescriptor(number_of_squares=4, image_width=10.0, image_height=10.0)


@pytest.fixture
def settings() -> GenerateSquaresConfig:
    return GenerateSquaresConfig(
        min_tracks_for_tau=5,
        min_required_r_squared=0.0,
        min_required_density_ratio=1.0,
        max_allowable_variability=100.0,
        neighbour_mode="Free",
        number_of_squares_in_recording=4,
    )


@pytest.fixture
def recording_tracks() -> pd.DataFrame:
    durations = [0.1] * 12 + [0.2] * 8 + [0.3] * 5 + [0.4] * 3 + [0.5] * 2
    return pd.concat(
        [_tracks(0, 2.0, 2.0, durations), _tracks(3, 7.0, 7.0, [0.1, 0.3])],
        ignore_index=True,
    )


class TestMedianOfExtremeTracks:
    def test_longest_and_shortest(self) -> None:
        durations = [float(d) for d in range(1, 11)]
        assert median_of_extreme_tracks(durations, 0.1, longest=True) == 10.0
        assert median_of_extreme_tracks(durations, 0.1, longest=False) == 1.0
        assert median_of_extreme_tracks(durations, 0.3, longest=True) == 9.0

    def test_at_least_one_and_empty(self) -> None:
        assert median_of_extreme_tracks([4.0], 0.1, longest=True) == 4.0
        assert median_of_extreme_tracks([], 0.1, longest=True) == 0.0


class TestComputeSquareAttributes:
    def test_counts_and_statistics(self, small_grid, settings, recording_tracks) -> None:
        recording = Recording(info=ExperimentInfo("r1", concentration=0.001))
        squares = small_grid.make_squares("r1")
        compute_square_attributes(recording, squares, recording_tracks, small_grid, settings)

        assert [sq.number_of_tracks for sq in squares] == [30, 0, 0, 2]
        busy = squares[0]
        assert busy.density_ratio == pytest.approx(3.75)
        assert busy.max_track_duration == 0.5
        assert busy.total_track_duration == pytest.approx(6.5)
        assert busy.median_track_duration == 0.2
        assert busy.median_long_track_duration == 0.5
        assert busy.median_short_track_duration == 0.1
        assert busy.max_displacement == 2.0
        assert busy.median_diffusion_coefficient == 0.2
        # All tracks share one sub-cell.
        assert busy.variability == pytest.approx(round(math.sqrt(99), 2))

    def test_density(self, small_grid, settings, recording_tracks) -> None:
        recording = Recording(info=ExperimentInfo("r1", concentration=0.001))
        squares = small_grid.make_squares("r1")
        compute_square_attributes(recording, squares, recording_tracks, small_grid, settings)
        # 30 tracks / 25 um^2 / 100 s / 0.001
        assert squares[0].density == pytest.approx(12.0)

    def test_too_few_tracks_for_tau(self, small_grid, settings, recording_tracks) -> None:
        recording = Recording(info=ExperimentInfo("r1"))
        squares = small_grid.make_squares("r1")
        compute_square_attributes(recording, squares, recording_tracks, small_grid, settings)
        assert math.isnan(squares[3].tau)
        assert math.isnan(squares[3].r_squared)
        assert not squares[3].selected
        assert math.isnan(squares[1].tau)

    def test_selection_and_labels(self, small_grid, settings, recording_tracks) -> None:
        recording = Recording(info=ExperimentInfo("r1"))
        squares = small_grid.make_squares("r1")
        compute_square_attributes(recording, squares, recording_tracks, small_grid, settings)
        assert squares[0].tau > 0
        assert squares[0].selected
        assert squares[0].label_number == 0
        assert all(sq.label_number is None for sq in squares[1:])

    def test_no_tracks(self, small_grid, settings) -> None:
        recording = Recording(info=ExperimentInfo("r1"))
        squares = small_grid.make_squares("r1")
        empty = _tracks(0, 0.0, 0.0, [])
        compute_square_attributes(recording, squares, empty, small_grid, settings)
        assert all(sq.number_of_tracks == 0 for sq in squares)
        assert not any(sq.selected for sq in squares)


class TestComputeRecordingAttributes:
    def test_background_tau_and_density(self, small_grid, settings, recording_tracks) -> None:
        recording = Recording(info=ExperimentInfo("r1", concentration=0.001))
        squares = small_grid.make_squares("r1")
        compute_square_attributes(recording, squares, recording_tracks, small_grid, settings)
        compute_recording_attributes(recording, squares, recording_tracks, small_grid, settings)

        assert recording.number_of_squares_in_background == 4
        assert recording.number_of_tracks_in_background == 32
        assert recording.average_tracks_in_background == 8.0
        assert recording.tau == squares[0].tau
        assert recording.r_squared == squares[0].r_squared
        assert recording.density == pytest.approx(12.0)

    def test_nothing_selected(self, small_grid, settings) -> None:
        recording = Recording(info=ExperimentInfo("r1"))
        squares = small_grid.make_squares("r1")
        empty = _tracks(0, 0.0, 0.0, [])
        compute_square_attributes(recording, squares, empty, small_grid, settings)
        compute_recording_attributes(recording, squares, empty, small_grid, settings)
        assert math.isnan(recording.tau)
        assert math.isnan(recording.density)
        assert recording.number_of_tracks_in_background == 0
