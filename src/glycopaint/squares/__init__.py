"""glycopaint squares: grid, background, visibility and square statistics."""

from glycopaint.squares.background import estimate_background
from glycopaint.squares.density import (
    calculate_density,
    calculate_density_ratio,
    calculate_variability,
)
from glycopaint.squares.generate import SquaresResult, generate_squares
from glycopaint.squares.grid import GridDescriptor, assign_tracks_to_squares
from glycopaint.squares.visibility import NeighbourMode, apply_visibility

__all__ = [
    "GridDescriptor",
    "NeighbourMode",
    "SquaresResult",
    "apply_visibility",
    "assign_tracks_to_squares",
    "calculate_density",
    "calculate_density_ratio",
    "calculate_variability",
    "estimate_background",
    "generate_squares",
]
