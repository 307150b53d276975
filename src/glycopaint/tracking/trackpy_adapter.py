"""trackpy detection adapter: wraps trackpy behind BaseDetectionEngine."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
import tifffile

from glycopaint.core.exceptions import DetectionError
from glycopaint.core.schema import PIXEL_WIDTH
from glycopaint.tracking.base_engine import (
    BaseDetectionEngine,
    DetectionParams,
    DetectionResult,
)
from glycopaint.tracking.features import tracks_from_linked

if TYPE_CHECKING:
    from glycopaint.tracking.runner import CancellationToken

logger = logging.getLogger(__name__)


class TrackpyEngine(BaseDetectionEngine):
    """Spot detection with ``trackpy.locate`` and linking with ``trackpy.link``.

    trackpy is imported lazily so the rest of glycopaint works without it.
    The recording's threshold is used as trackpy's ``minmass``. Gap closing
    maps onto trackpy's ``memory``; splitting and merging are not supported
    by trackpy and are ignored.

    Args:
        pixel_size: Micrometres per pixel of the image stacks.
    """

    name = "trackpy"

    def __init__(self, pixel_size: float = PIXEL_WIDTH) -> None:
        self.pixel_size = pixel_size
        self._tp: Any = None

    def _trackpy(self) -> Any:
        if self._tp is None:
            try:
                import trackpy as tp  # Lazy import
            except ImportError as exc:
                raise ImportError(
                    "trackpy is required for spot detection. "
                    "Install it with: pip install 'glycopaint[trackpy]' or pip install trackpy"
                ) from exc
            tp.quiet()
            self._tp = tp
        return self._tp

    def diameter_pixels(self, radius: float) -> int:
        """Odd feature diameter in pixels for a spot radius in micrometres."""
        return max(3, 2 * int(round(radius / self.pixel_size)) + 1)

    def read_stack(self, image_path: Path, target_channel: int) -> np.ndarray:
        """Read an image stack as ``(frames, y, x)``.

        Raises:
            DetectionError: If the file is missing or has an unusable shape.
        """
        image_path = Path(image_path)
        if not image_path.is_file():
            raise DetectionError(image_path.stem, f"image not found: {image_path}")
        stack = tifffile.imread(image_path)
        if stack.ndim == 2:
            stack = stack[np.newaxis]
        elif stack.ndim == 4:
            if target_channel > stack.shape[1]:
                raise DetectionError(
                    image_path.stem,
                    f"channel {target_channel} not in stack with {stack.shape[1]} channels",
                )
            stack = stack[:, target_channel - 1]
        elif stack.ndim != 3:
            raise DetectionError(image_path.stem, f"unsupported image shape {stack.shape}")
        return stack

    def detect(
        self,
        image_path: Path,
        recording_name: str,
        params: DetectionParams,
        token: CancellationToken | None = None,
    ) -> DetectionResult:
        tp = self._trackpy()
        start = time.monotonic()
        stack = self.read_stack(image_path, params.target_channel)
        diameter = self.diameter_pixels(params.radius)

        located = []
        n_spots = 0
        for frame_number, frame in enumerate(stack):
            if token is not None:
                token.raise_if_cancelled(recording_name)
            if params.do_median_filtering:
                from scipy.ndimage import median_filter

                frame = median_filter(frame, size=3)
            features = tp.locate(
                frame,
                diameter=diameter,
                minmass=params.threshold,
                separation=diameter,
            )
            features["frame"] = frame_number
            n_spots += len(features)
            if n_spots > params.max_spots_in_image:
                raise DetectionError(
                    recording_name,
                    f"more than {params.max_spots_in_image} spots",
                )
            located.append(features)

        spots = pd.concat(located, ignore_index=True) if located else pd.DataFrame()
        if spots.empty:
            return DetectionResult(
                number_of_spots=0,
                number_of_tracks=0,
                number_of_raw_tracks=0,
                number_of_frames=len(stack),
                number_of_spots_in_all_tracks=0,
                duration_seconds=time.monotonic() - start,
            )

        if token is not None:
            token.raise_if_cancelled(recording_name)
        memory = params.max_frame_gap if params.allow_gap_closing else 0
        linked = tp.link(
            spots,
            search_range=params.linking_max_distance / self.pixel_size,
            memory=memory,
        )
        raw_tracks = int(linked["particle"].nunique())
        filtered = tp.filter_stubs(linked, threshold=params.min_spots_in_track).reset_index(drop=True)

        filtered = filtered.assign(
            x=filtered["x"] * self.pixel_size,
            y=filtered["y"] * self.pixel_size,
        )
        tracks = tracks_from_linked(filtered, recording_name, params.frame_interval)
        logger.debug(
            "%s: %d spots, %d raw tracks, %d tracks",
            recording_name, n_spots, raw_tracks, len(tracks),
        )
        return DetectionResult(
            number_of_spots=n_spots,
            number_of_tracks=len(tracks),
            number_of_raw_tracks=raw_tracks,
            number_of_frames=len(stack),
            number_of_spots_in_all_tracks=int(len(filtered)),
            tracks=tracks,
            duration_seconds=time.monotonic() - start,
        )
