"""Iterative background estimation over the squares of a recording."""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from glycopaint.core.models import BackgroundEstimate, Square

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 10
CONVERGENCE_TOLERANCE = 0.01
SIGMA_FACTOR = 2.0


def estimate_background(squares: Sequence[Square]) -> BackgroundEstimate:
    """Estimate the background track count by iterative outlier removal.

    Starting from all squares, squares whose track count exceeds
    ``mean + 2 * std`` are dropped and the mean recomputed, for at most 10
    iterations or until the relative change of the mean is below 0.01.
    The standard deviation is the population deviation of the survivors
    around the current mean.

    Args:
        squares: Squares of one recording.

    Returns:
        BackgroundEstimate with the converged mean and surviving squares.
        An empty input gives ``(nan, ())``; a zero mean keeps all squares.
    """
    if not squares:
        return BackgroundEstimate(math.nan, ())

    members = list(squares)
    counts = np.array([sq.number_of_tracks for sq in members], dtype=float)
    mean = float(counts.mean())
    if mean == 0:
        return BackgroundEstimate(0.0, tuple(members))

    for iteration in range(MAX_ITERATIONS):
        counts = np.array([sq.number_of_tracks for sq in members], dtype=float)
        std = math.sqrt(float(np.mean((counts - mean) ** 2)))
        threshold = mean + SIGMA_FACTOR * std

        survivors = [sq for sq in members if sq.number_of_tracks <= threshold]
        if not survivors:
            break

        new_mean = float(np.mean([sq.number_of_tracks for sq in survivors]))
        members = survivors
        change = abs(new_mean - mean) / mean if mean else 0.0
        mean = new_mean
        if change < CONVERGENCE_TOLERANCE:
            logger.debug("Background converged after %d iterations", iteration + 1)
            break

    return BackgroundEstimate(mean, tuple(members))


def average_track_count_of_background(squares: Sequence[Square], number_of_squares: int) -> float:
    """Mean track count over the ``number_of_squares`` lowest non-empty squares.

    The fixed-fraction background used for the ``Density Ratio Ori`` column.
    Returns 0 when no square has tracks.
    """
    counts = sorted(sq.number_of_tracks for sq in squares if sq.number_of_tracks > 0)
    selected = counts[:max(1, number_of_squares)]
    if not selected:
        return 0.0
    return float(sum(selected)) / len(selected)
