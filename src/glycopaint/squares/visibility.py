"""Square selection: threshold filter plus optional neighbour requirement."""

from __future__ import annotations

import math
from enum import Enum
from typing import Sequence

from glycopaint.core.models import Square


class NeighbourMode(Enum):
    """How many selected neighbours a square needs to stay selected.

    ``FREE`` has no requirement. ``RELAXED`` needs one selected square among
    the 8 surrounding cells; ``STRICT`` needs one among the 4 orthogonal
    cells.
    """

    FREE = "Free"
    RELAXED = "Relaxed"
    STRICT = "Strict"

    @classmethod
    def parse(cls, value: str | NeighbourMode) -> NeighbourMode:
        """Parse a mode name case-insensitively.

        Raises:
            ValueError: If ``value`` names no mode.
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for mode in cls:
            if mode.value.lower() == text:
                return mode
        raise ValueError(
            f"Unknown neighbour mode {value!r}. "
            f"Supported: {sorted(m.value for m in cls)}"
        )

    def adjacent(self, row_distance: int, col_distance: int) -> bool:
        """Whether a square at the given offsets counts as a neighbour."""
        dr, dc = abs(row_distance), abs(col_distance)
        if self is NeighbourMode.RELAXED:
            return dr <= 1 and dc <= 1 and (dr, dc) != (0, 0)
        if self is NeighbourMode.STRICT:
            return dr + dc == 1
        return True


def passes_thresholds(
    square: Square,
    min_density_ratio: float,
    max_variability: float,
    min_r_squared: float,
) -> bool:
    r2 = square.r_squared
    if r2 is None or math.isnan(r2):
        return False
    return (
        square.density_ratio >= min_density_ratio
        and square.variability <= max_variability
        and r2 >= min_r_squared
    )


def apply_visibility(
    squares: Sequence[Square],
    min_density_ratio: float,
    max_variability: float,
    min_r_squared: float,
    neighbour_mode: str | NeighbourMode = NeighbourMode.FREE,
) -> None:
    """Recompute ``selected`` for every square in place.

    Pass 1 selects squares meeting all thresholds. Unless the mode is
    ``FREE``, pass 2 deselects pass-1 squares that have no adjacent pass-1
    square. Pass 2 reads only the pass-1 state, so the result does not
    depend on square order and repeated calls give the same flags.

    Args:
        squares: Squares of one recording.
        min_density_ratio: Lowest acceptable density ratio.
        max_variability: Highest acceptable variability.
        min_r_squared: Lowest acceptable R² (NaN never passes).
        neighbour_mode: Neighbour requirement, as enum or name.
    """
    mode = NeighbourMode.parse(neighbour_mode)
    for sq in squares:
        sq.selected = passes_thresholds(sq, min_density_ratio, max_variability, min_r_squared)

    if mode is NeighbourMode.FREE:
        return

    first_pass = [sq for sq in squares if sq.selected]
    keep = set()
    for sq in first_pass:
        for other in first_pass:
            if other is sq:
                continue
            if mode.adjacent(sq.row - other.row, sq.column - other.column):
                keep.add(id(sq))
                break
    for sq in first_pass:
        sq.selected = id(sq) in keep
