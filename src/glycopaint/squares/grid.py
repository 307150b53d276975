"""Square grid geometry and assignment of tracks to squares."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import pandas as pd

from glycopaint.core.models import Square
from glycopaint.core.schema import IMAGE_HEIGHT, IMAGE_WIDTH


@dataclass(frozen=True)
class GridDescriptor:
    """Immutable description of an ``n x n`` grid over the image plane.

    Attributes:
        number_of_squares: Total squares; must be a perfect square.
        image_width: Width of the image plane in micrometres.
        image_height: Height of the image plane in micrometres.
    """

    number_of_squares: int = 400
    image_width: float = IMAGE_WIDTH
    image_height: float = IMAGE_HEIGHT

    def __post_init__(self) -> None:
        if self.number_of_squares <= 0:
            raise ValueError(
                f"number_of_squares must be > 0, got {self.number_of_squares}"
            )
        side = math.isqrt(self.number_of_squares)
        if side * side != self.number_of_squares:
            raise ValueError(
                f"number_of_squares must be a perfect square, got {self.number_of_squares}"
            )
        if self.image_width <= 0 or self.image_height <= 0:
            raise ValueError("image dimensions must be > 0")

    @property
    def squares_per_row(self) -> int:
        return math.isqrt(self.number_of_squares)

    @property
    def square_width(self) -> float:
        return self.image_width / self.squares_per_row

    @property
    def square_height(self) -> float:
        return self.image_height / self.squares_per_row

    @property
    def square_area(self) -> float:
        return self.square_width * self.square_height

    def cell(self, index: int) -> tuple[int, int, float, float, float, float]:
        """Grid position and bounds of square ``index``.

        Returns:
            ``(row, col, x0, y0, x1, y1)`` with bounds rounded to 2 decimals.

        Raises:
            IndexError: If ``index`` is outside the grid.
        """
        if not 0 <= index < self.number_of_squares:
            raise IndexError(f"square index {index} outside grid of {self.number_of_squares}")
        n = self.squares_per_row
        col = index % n
        row = index // n
        w = self.square_width
        h = self.square_height
        return (
            row,
            col,
            round(col * w, 2),
            round(row * h, 2),
            round((col + 1) * w, 2),
            round((row + 1) * h, 2),
        )

    def make_squares(self, recording_name: str) -> list[Square]:
        """Create the empty squares of one recording, in index order."""
        squares = []
        for index in range(self.number_of_squares):
            row, col, x0, y0, x1, y1 = self.cell(index)
            squares.append(Square(
                recording_name=recording_name,
                square_number=index,
                row=row,
                column=col,
                x0=x0,
                y0=y0,
                x1=x1,
                y1=y1,
            ))
        return squares

    def square_index(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Square number containing each point, or -1 when outside the image.

        Intervals are half-open, except the last row and column which also
        include the far image edge.
        """
        n = self.squares_per_row
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        col = np.floor(x / self.square_width).astype(int)
        row = np.floor(y / self.square_height).astype(int)
        col = np.where(np.isclose(x, self.image_width), n - 1, col)
        row = np.where(np.isclose(y, self.image_height), n - 1, row)
        inside = (
            (x >= 0) & (y >= 0) & (col >= 0) & (col < n) & (row >= 0) & (row < n)
            & ~np.isnan(x) & ~np.isnan(y)
        )
        return np.where(inside, row * n + col, -1)


def assign_tracks_to_squares(tracks: pd.DataFrame, grid: GridDescriptor) -> pd.Series:
    """Square number for every track, based on its mean location.

    Tracks outside the grid get -1.
    """
    if tracks.empty:
        return pd.Series([], dtype=int, index=tracks.index)
    indices = grid.square_index(
        tracks["Track X Location"].to_numpy(dtype=float),
        tracks["Track Y Location"].to_numpy(dtype=float),
    )
    return pd.Series(indices, index=tracks.index, dtype=int)
