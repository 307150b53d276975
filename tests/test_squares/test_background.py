"""Tests for background estimation."""

from __future__ import annotations

import math

import numpy as np

from glycopaint.squares.background import (
    average_track_count_of_background,
    estimate_background,
)


class TestEstimateBackground:
    def test_uniform_counts(self, make_squares) -> None:
        squares = make_squares([4] * 16)
        result = estimate_background(squares)
        assert result.mean == 4.0
        assert len(result.members) == 16

    def test_outliers_lower_the_mean(self, make_squares) -> None:
        counts = [2] * 22 + [3] * 2 + [40]
        squares = make_squares(counts)
        result = estimate_background(squares)
        assert result.mean < float(np.mean(counts))
        assert all(sq.number_of_tracks < 40 for sq in result.members)
        assert result.track_count == sum(sq.number_of_tracks for sq in result.members)

    def test_members_keep_input_order(self, make_squares) -> None:
        squares = make_squares([1, 50, 1, 1, 2, 1, 1, 1, 1])
        result = estimate_background(squares)
        numbers = [sq.square_number for sq in result.members]
        assert numbers == sorted(numbers)
        assert 1 not in numbers

    def test_all_zero(self, make_squares) -> None:
        squares = make_squares([0] * 9)
        result = estimate_background(squares)
        assert result.mean == 0.0
        assert len(result.members) == 9

    def test_empty(self) -> None:
        result = estimate_background([])
        assert math.isnan(result.mean)
        assert result.members == ()


class TestFixedFractionBackground:
    def test_lowest_non_zero(self, make_squares) -> None:
        squares = make_squares([0, 5, 1, 2, 9, 0, 3, 0, 7])
        assert average_track_count_of_background(squares, 3) == 2.0

    def test_no_tracks(self, make_squares) -> None:
        assert average_track_count_of_background(make_squares([0] * 4), 2) == 0.0
