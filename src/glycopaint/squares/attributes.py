"""Per-square and per-recording statistics derived from tracks."""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np
import pandas as pd

from glycopaint.core.config import GenerateSquaresConfig
from glycopaint.core.models import Recording, Square
from glycopaint.core.schema import RECORDING_DURATION
from glycopaint.fitting.tau import fit_tau
from glycopaint.squares.background import (
    average_track_count_of_background,
    estimate_background,
)
from glycopaint.squares.density import (
    calculate_density,
    calculate_density_ratio,
    calculate_variability,
)
from glycopaint.squares.grid import GridDescriptor
from glycopaint.squares.visibility import apply_visibility

logger = logging.getLogger(__name__)

TRACK_FRACTION_FOR_EXTREMES = 0.1
VARIABILITY_GRANULARITY = 10


def _round(value: float, digits: int) -> float:
    if value is None or not math.isfinite(value):
        return math.nan
    return round(float(value), digits)


def median_of_extreme_tracks(durations: Sequence[float], fraction: float, longest: bool) -> float:
    """Median duration of the shortest (or longest) ``fraction`` of tracks.

    At least one track is always taken; an empty input gives 0.
    """
    values = sorted(durations)
    if not values:
        return 0.0
    count = max(int(round(fraction * len(values))), 1)
    subset = values[-count:] if longest else values[:count]
    return float(np.median(subset))


def _column_stat(frame: pd.DataFrame, column: str, how: str, digits: int) -> float:
    values = frame[column].dropna()
    if values.empty:
        return math.nan
    result = getattr(values, how)()
    return _round(float(result), digits)


def compute_square_attributes(
    recording: Recording,
    squares: Sequence[Square],
    tracks: pd.DataFrame,
    grid: GridDescriptor,
    settings: GenerateSquaresConfig,
) -> None:
    """Fill in the statistics of every square of a recording, in place.

    ``tracks`` holds the recording's tracks with their ``Square Number``
    already assigned. After the statistics the visibility filter is applied
    and label numbers are given to the selected squares (in square order).
    """
    by_square = {
        int(number): group
        for number, group in tracks.groupby("Square Number")
        if number >= 0
    } if not tracks.empty else {}

    for sq in squares:
        sq.number_of_tracks = len(by_square.get(sq.square_number, ()))

    background = estimate_background(squares)
    background_ori = average_track_count_of_background(
        squares, int(settings.fraction_of_squares_for_background * grid.number_of_squares),
    )
    logger.debug(
        "%s: background track count %.2f over %d squares",
        recording.name, background.mean, len(background.members),
    )

    for sq in squares:
        sq.label_number = None
        group = by_square.get(sq.square_number)
        if group is None or group.empty:
            sq.tau = math.nan
            sq.r_squared = math.nan
            continue

        durations = group["Track Duration"].dropna().tolist()
        if len(group) >= settings.min_tracks_for_tau:
            result = fit_tau(durations, settings.min_tracks_for_tau, settings.min_required_r_squared)
            if result.succeeded:
                sq.tau = _round(result.tau, 0)
                sq.r_squared = _round(result.r_squared, 3)
            else:
                sq.tau = math.nan
                sq.r_squared = math.nan
        else:
            sq.tau = math.nan
            sq.r_squared = math.nan

        count = len(group)
        sq.variability = _round(calculate_variability(
            group["Track X Location"].to_numpy(dtype=float),
            group["Track Y Location"].to_numpy(dtype=float),
            sq.square_number,
            grid,
            VARIABILITY_GRANULARITY,
        ), 2)
        if recording.concentration > 0:
            sq.density = _round(calculate_density(
                count, grid.square_area, RECORDING_DURATION, recording.concentration,
            ), 3)
        else:
            sq.density = math.nan
        sq.density_ratio = _round(calculate_density_ratio(count, background.mean), 2)
        sq.density_ratio_ori = _round(calculate_density_ratio(count, background_ori), 2)
        sq.median_diffusion_coefficient = _column_stat(group, "Diffusion Coefficient", "median", 2)
        sq.median_diffusion_coefficient_ext = _column_stat(group, "Diffusion Coefficient Ext", "median", 2)
        sq.median_long_track_duration = _round(
            median_of_extreme_tracks(durations, TRACK_FRACTION_FOR_EXTREMES, longest=True), 1,
        )
        sq.median_short_track_duration = _round(
            median_of_extreme_tracks(durations, TRACK_FRACTION_FOR_EXTREMES, longest=False), 1,
        )
        sq.median_displacement = _column_stat(group, "Track Displacement", "median", 1)
        sq.max_displacement = _column_stat(group, "Track Displacement", "max", 1)
        sq.total_displacement = _column_stat(group, "Track Displacement", "sum", 1)
        sq.median_max_speed = _column_stat(group, "Track Max Speed", "median", 1)
        sq.max_max_speed = _column_stat(group, "Track Max Speed", "max", 1)
        sq.median_mean_speed = _column_stat(group, "Track Median Speed", "median", 1)
        sq.max_mean_speed = _column_stat(group, "Track Median Speed", "max", 1)
        sq.max_track_duration = _column_stat(group, "Track Duration", "max", 1)
        sq.total_track_duration = _column_stat(group, "Track Duration", "sum", 1)
        sq.median_track_duration = _column_stat(group, "Track Duration", "median", 1)

    apply_visibility(
        squares,
        settings.min_required_density_ratio,
        settings.max_allowable_variability,
        settings.min_required_r_squared,
        settings.neighbour_mode,
    )

    label = 0
    for sq in squares:
        if sq.selected:
            sq.label_number = label
            label += 1


def compute_recording_attributes(
    recording: Recording,
    squares: Sequence[Square],
    tracks: pd.DataFrame,
    grid: GridDescriptor,
    settings: GenerateSquaresConfig,
) -> None:
    """Fill in background, Tau, R² and density of a recording, in place.

    Tau and density are computed over the tracks of the selected squares.
    """
    background = estimate_background(squares)
    recording.number_of_squares_in_background = len(background.members)
    recording.number_of_tracks_in_background = background.track_count
    recording.average_tracks_in_background = _round(background.mean, 3)

    selected = [sq.square_number for sq in squares if sq.selected]
    if tracks.empty or not selected:
        selected_tracks = tracks.iloc[0:0]
    else:
        selected_tracks = tracks[tracks["Square Number"].isin(selected)]

    result = fit_tau(
        selected_tracks["Track Duration"].dropna().tolist() if not selected_tracks.empty else [],
        settings.min_tracks_for_tau,
        settings.min_required_r_squared,
    )
    if result.succeeded:
        recording.tau = _round(result.tau, 0)
        recording.r_squared = _round(result.r_squared, 3)
    else:
        recording.tau = math.nan
        recording.r_squared = math.nan

    if selected and recording.concentration > 0:
        recording.density = _round(calculate_density(
            len(selected_tracks),
            grid.square_area * len(selected),
            RECORDING_DURATION,
            recording.concentration,
        ), 2)
    else:
        recording.density = math.nan
