"""Per-track kinematics computed from linked spot positions."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
import pandas as pd

from glycopaint.core.models import Track


def track_from_points(
    recording_name: str,
    track_id: int,
    frames: Sequence[int],
    xs: Sequence[float],
    ys: Sequence[float],
    frame_interval: float,
) -> Track:
    """Measure one track from the positions of its spots.

    Mean squared displacement is accumulated both from the first spot
    (``Diffusion Coefficient``) and between consecutive spots
    (``Diffusion Coefficient Ext``), each divided by ``4 * dt``.

    Args:
        recording_name: Recording the track belongs to.
        track_id: Identifier of the track within the recording.
        frames: Frame number of every spot.
        xs: X position of every spot (micrometres).
        ys: Y position of every spot (micrometres).
        frame_interval: Seconds between frames.

    Returns:
        Track with all kinematic columns filled where defined.
    """
    order = np.argsort(np.asarray(frames, dtype=float), kind="stable")
    f = np.asarray(frames, dtype=int)[order]
    x = np.asarray(xs, dtype=float)[order]
    y = np.asarray(ys, dtype=float)[order]
    n = len(f)
    if n == 0:
        return Track(recording_name=recording_name, track_id=track_id, number_of_spots=0)

    x_mean = float(np.mean(x))
    y_mean = float(np.mean(y))
    if n < 2:
        return Track(
            recording_name=recording_name,
            track_id=track_id,
            number_of_spots=n,
            x_location=x_mean,
            y_location=y_mean,
        )

    frame_steps = np.diff(f)
    gaps = frame_steps[frame_steps > 1] - 1
    dx = np.diff(x)
    dy = np.diff(y)
    steps = np.hypot(dx, dy)
    with np.errstate(divide="ignore", invalid="ignore"):
        speeds = steps / (np.maximum(frame_steps, 1) * frame_interval)

    total_distance = float(np.sum(steps))
    displacement = float(math.hypot(x[-1] - x[0], y[-1] - y[0]))

    n_steps = n - 1
    msd = float(np.sum((x[1:] - x[0]) ** 2 + (y[1:] - y[0]) ** 2)) / n_steps
    msd_ext = float(np.sum(dx ** 2 + dy ** 2)) / n_steps
    if frame_interval > 0:
        diffusion = round(msd / (4.0 * frame_interval), 2)
        diffusion_ext = round(msd_ext / (4.0 * frame_interval), 2)
    else:
        diffusion = diffusion_ext = math.nan

    confinement = round(displacement / total_distance, 2) if total_distance > 0 else math.nan

    return Track(
        recording_name=recording_name,
        track_id=track_id,
        number_of_spots=n,
        number_of_gaps=int(gaps.size),
        longest_gap=int(gaps.max()) if gaps.size else 0,
        track_duration=float((f[-1] - f[0]) * frame_interval),
        x_location=x_mean,
        y_location=y_mean,
        displacement=displacement,
        max_speed=float(np.max(speeds)),
        median_speed=float(np.median(speeds)),
        diffusion_coefficient=diffusion,
        diffusion_coefficient_ext=diffusion_ext,
        total_distance=total_distance if total_distance > 0 else math.nan,
        confinement_ratio=confinement,
    )


def tracks_from_linked(
    linked: pd.DataFrame,
    recording_name: str,
    frame_interval: float,
    particle_column: str = "particle",
) -> list[Track]:
    """Measure every track in a linked spot table.

    Args:
        linked: One row per spot with ``frame``, ``x``, ``y`` (micrometres)
            and the track identifier in ``particle_column``.
        recording_name: Recording the tracks belong to.
        frame_interval: Seconds between frames.
        particle_column: Column holding the track identifier.

    Returns:
        Tracks ordered by identifier.
    """
    if linked.empty:
        return []
    return [
        track_from_points(
            recording_name,
            int(track_id),
            group["frame"].to_numpy(),
            group["x"].to_numpy(),
            group["y"].to_numpy(),
            frame_interval,
        )
        for track_id, group in linked.groupby(particle_column, sort=True)
    ]
