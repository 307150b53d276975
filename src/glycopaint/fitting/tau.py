"""Tau estimation: fit a mono-exponential decay to a track-duration histogram.

The frequency distribution of track durations is fitted with
``y = m * exp(-t * x) + b`` by non-linear least squares. The rate ``t`` is
reported as the time constant ``tau = 1000 / t`` (milliseconds when
durations are in seconds).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np
from scipy.optimize import least_squares

logger = logging.getLogger(__name__)

MAX_FUNCTION_EVALUATIONS = 10000


class TauStatus(Enum):
    """Outcome of a Tau fit."""

    SUCCESS = "success"
    INSUFFICIENT_POINTS = "insufficient_points"
    RSQUARED_TOO_LOW = "rsquared_too_low"
    NO_FIT = "no_fit"


@dataclass(frozen=True)
class TauResult:
    """Result of a Tau fit.

    Attributes:
        tau: Decay time constant (1000 / rate), NaN when no fit.
        r_squared: Coefficient of determination over the histogram points.
        status: Fit outcome.
    """

    tau: float
    r_squared: float
    status: TauStatus

    @property
    def succeeded(self) -> bool:
        return self.status is TauStatus.SUCCESS


def _model(params: np.ndarray, x: np.ndarray) -> np.ndarray:
    m, t, b = params
    return m * np.exp(-t * x) + b


def _jacobian(params: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    m, t, _ = params
    e = np.exp(-t * x)
    return np.column_stack((e, -m * x * e, np.ones_like(x)))


def _residuals(params: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    return _model(params, x) - y


def initial_guess(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Starting point for the solver from a log-linearisation of the data.

    Returns:
        Array ``[m0, t0, b0]`` clamped to the admissible ranges.
    """
    y_max = float(np.max(y))
    b0 = max(0.0, float(np.min(y)))
    m0 = max(1e-6, y_max - b0)

    shifted = y - b0
    usable = shifted > max(1e-6, 0.01 * m0)
    if np.count_nonzero(usable) >= 2 and np.ptp(x[usable]) > 0:
        slope = np.polyfit(x[usable], np.log(shifted[usable]), 1)[0]
        t0 = max(1e-9, -float(slope))
    else:
        t0 = 1.0 / max(1e-3, float(np.max(x)))

    return np.array([
        min(max(m0, 1e-9), 1e9),
        min(max(t0, 1e-9), 1e3),
        min(max(b0, 0.0), max(1.0, y_max)),
    ])


def r_squared(y: np.ndarray, y_fit: np.ndarray) -> float:
    """Coefficient of determination; NaN when ``y`` has no variance."""
    ss_res = float(np.sum((y - y_fit) ** 2))
    ss_tot = float(np.sum((y - np.mean(y)) ** 2))
    if ss_tot == 0:
        return math.nan
    return 1.0 - ss_res / ss_tot


def fit_decay(
    x: Sequence[float],
    y: Sequence[float],
    min_r_squared_required: float = 0.0,
) -> TauResult:
    """Fit ``y = m * exp(-t * x) + b`` to explicit sample points.

    Solver failures are never raised; they produce a ``NO_FIT`` result.
    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if xs.size < 2 or np.unique(xs).size < 2:
        return TauResult(math.nan, math.nan, TauStatus.NO_FIT)

    p0 = initial_guess(xs, ys)
    # LM needs at least as many residuals as parameters.
    method = "lm" if xs.size >= p0.size else "trf"
    try:
        solution = least_squares(
            _residuals,
            p0,
            jac=_jacobian,
            args=(xs, ys),
            method=method,
            max_nfev=MAX_FUNCTION_EVALUATIONS,
        )
        params = solution.x
        t = float(params[1])
        tau = 1000.0 / t if t > 0 else math.nan
        r2 = r_squared(ys, _model(params, xs))
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as exc:
        logger.debug("Tau fit failed: %s", exc)
        tau, r2 = math.nan, math.nan

    if not (math.isfinite(tau) and math.isfinite(r2)):
        return TauResult(math.nan, math.nan, TauStatus.NO_FIT)
    if r2 < min_r_squared_required:
        return TauResult(tau, r2, TauStatus.RSQUARED_TOO_LOW)
    return TauResult(tau, r2, TauStatus.SUCCESS)


def duration_histogram(durations: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    """Frequency distribution of durations, sorted by duration.

    Returns:
        ``(x, y)`` where ``x`` are the distinct durations and ``y`` their counts.
    """
    values, counts = np.unique(np.asarray(durations, dtype=float), return_counts=True)
    return values, counts.astype(float)


def fit_tau(
    durations: Sequence[float],
    min_tracks_required: int,
    min_r_squared_required: float,
) -> TauResult:
    """Estimate Tau from a collection of track durations.

    Args:
        durations: Track durations, one per track.
        min_tracks_required: Fewer durations than this yields
            ``INSUFFICIENT_POINTS``.
        min_r_squared_required: Fits below this R² yield
            ``RSQUARED_TOO_LOW`` (with tau and R² still reported).

    Returns:
        TauResult with tau, R² and status.
    """
    clean = [d for d in durations if d is not None and not math.isnan(d)]
    if len(clean) < min_tracks_required:
        return TauResult(0.0, 0.0, TauStatus.INSUFFICIENT_POINTS)
    x, y = duration_histogram(clean)
    return fit_decay(x, y, min_r_squared_required)
