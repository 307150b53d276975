"""Abstract detection-engine interface and parameter definitions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from glycopaint.core.config import DEFAULTS, TRACKMATE, PaintConfig
from glycopaint.core.models import Track
from glycopaint.core.schema import TIME_INTERVAL

if TYPE_CHECKING:
    from glycopaint.tracking.runner import CancellationToken


@dataclass(frozen=True)
class DetectionParams:
    """Parameters for detecting and linking spots in one recording.

    Distances are in micrometres.

    Attributes:
        threshold: Spot quality threshold (per recording).
        radius: Expected spot radius.
        do_subpixel_localization: Refine spot positions below pixel size.
        do_median_filtering: Median-filter frames before detection.
        linking_max_distance: Largest frame-to-frame displacement.
        alternative_linking_cost_factor: Cost factor for alternative links.
        allow_gap_closing: Allow tracks to skip frames.
        gap_closing_max_distance: Largest displacement across a gap.
        max_frame_gap: Largest number of frames a gap may span.
        allow_track_splitting: Allow one track to split into two.
        splitting_max_distance: Largest distance for a split.
        allow_track_merging: Allow two tracks to merge.
        merging_max_distance: Largest distance for a merge.
        min_spots_in_track: Shorter tracks are discarded.
        max_spots_in_image: Recordings with more spots fail.
        target_channel: 1-based channel to analyse.
        frame_interval: Seconds between frames.
    """

    threshold: float
    radius: float = 0.5
    do_subpixel_localization: bool = False
    do_median_filtering: bool = False
    linking_max_distance: float = 0.6
    alternative_linking_cost_factor: float = 1.05
    allow_gap_closing: bool = True
    gap_closing_max_distance: float = 1.2
    max_frame_gap: int = 3
    allow_track_splitting: bool = False
    splitting_max_distance: float = 15.0
    allow_track_merging: bool = False
    merging_max_distance: float = 15.0
    min_spots_in_track: int = 3
    max_spots_in_image: int = 2000000
    target_channel: int = 1
    frame_interval: float = TIME_INTERVAL

    def __post_init__(self) -> None:
        """Validate parameters."""
        if self.radius <= 0:
            raise ValueError(f"radius must be > 0, got {self.radius}")
        if self.linking_max_distance <= 0:
            raise ValueError(
                f"linking_max_distance must be > 0, got {self.linking_max_distance}"
            )
        if self.max_frame_gap < 0:
            raise ValueError(f"max_frame_gap must be >= 0, got {self.max_frame_gap}")
        if self.min_spots_in_track < 1:
            raise ValueError(
                f"min_spots_in_track must be >= 1, got {self.min_spots_in_track}"
            )
        if self.target_channel < 1:
            raise ValueError(f"target_channel must be >= 1, got {self.target_channel}")
        if self.frame_interval <= 0:
            raise ValueError(f"frame_interval must be > 0, got {self.frame_interval}")

    @classmethod
    def from_config(cls, config: PaintConfig, threshold: float) -> DetectionParams:
        """Build from the ``TrackMate`` section plus a per-recording threshold."""
        d = DEFAULTS[TRACKMATE]
        s = TRACKMATE
        return cls(
            threshold=threshold,
            radius=config.get_float(s, "RADIUS", d["RADIUS"]),
            do_subpixel_localization=config.get_bool(s, "DO_SUBPIXEL_LOCALIZATION", d["DO_SUBPIXEL_LOCALIZATION"]),
            do_median_filtering=config.get_bool(s, "DO_MEDIAN_FILTERING", d["DO_MEDIAN_FILTERING"]),
            linking_max_distance=config.get_float(s, "LINKING_MAX_DISTANCE", d["LINKING_MAX_DISTANCE"]),
            alternative_linking_cost_factor=config.get_float(
                s, "ALTERNATIVE_LINKING_COST_FACTOR", d["ALTERNATIVE_LINKING_COST_FACTOR"],
            ),
            allow_gap_closing=config.get_bool(s, "ALLOW_GAP_CLOSING", d["ALLOW_GAP_CLOSING"]),
            gap_closing_max_distance=config.get_float(s, "GAP_CLOSING_MAX_DISTANCE", d["GAP_CLOSING_MAX_DISTANCE"]),
            max_frame_gap=config.get_int(s, "MAX_FRAME_GAP", d["MAX_FRAME_GAP"]),
            allow_track_splitting=config.get_bool(s, "ALLOW_TRACK_SPLITTING", d["ALLOW_TRACK_SPLITTING"]),
            splitting_max_distance=config.get_float(s, "SPLITTING_MAX_DISTANCE", d["SPLITTING_MAX_DISTANCE"]),
            allow_track_merging=config.get_bool(s, "ALLOW_TRACK_MERGING", d["ALLOW_TRACK_MERGING"]),
            merging_max_distance=config.get_float(s, "MERGING_MAX_DISTANCE", d["MERGING_MAX_DISTANCE"]),
            min_spots_in_track=config.get_int(s, "MIN_NR_SPOTS_IN_TRACK", d["MIN_NR_SPOTS_IN_TRACK"]),
            max_spots_in_image=config.get_int(s, "MAX_NR_SPOTS_IN_IMAGE", d["MAX_NR_SPOTS_IN_IMAGE"]),
            target_channel=config.get_int(s, "TARGET_CHANNEL", d["TARGET_CHANNEL"]),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict, e.g. for the parameters report."""
        return {
            "threshold": self.threshold,
            "radius": self.radius,
            "do_subpixel_localization": self.do_subpixel_localization,
            "do_median_filtering": self.do_median_filtering,
            "linking_max_distance": self.linking_max_distance,
            "alternative_linking_cost_factor": self.alternative_linking_cost_factor,
            "allow_gap_closing": self.allow_gap_closing,
            "gap_closing_max_distance": self.gap_closing_max_distance,
            "max_frame_gap": self.max_frame_gap,
            "allow_track_splitting": self.allow_track_splitting,
            "splitting_max_distance": self.splitting_max_distance,
            "allow_track_merging": self.allow_track_merging,
            "merging_max_distance": self.merging_max_distance,
            "min_spots_in_track": self.min_spots_in_track,
            "max_spots_in_image": self.max_spots_in_image,
            "target_channel": self.target_channel,
            "frame_interval": self.frame_interval,
        }


@dataclass(frozen=True)
class DetectionResult:
    """Result of detecting and linking one recording.

    Attributes:
        number_of_spots: Spots detected over all frames.
        number_of_tracks: Tracks after filtering.
        number_of_raw_tracks: Tracks before filtering short ones.
        number_of_frames: Frames in the recording.
        number_of_spots_in_all_tracks: Spots belonging to kept tracks.
        tracks: Per-track kinematic records.
        duration_seconds: Wall-clock time of the detection.
    """

    number_of_spots: int
    number_of_tracks: int
    number_of_raw_tracks: int
    number_of_frames: int
    number_of_spots_in_all_tracks: int
    tracks: list[Track] = field(default_factory=list)
    duration_seconds: float = 0.0


class BaseDetectionEngine(ABC):
    """Abstract interface for spot detection and linking backends.

    Implementations should check ``token`` between units of work (for
    example between frames) and raise CancelledError once it is set.
    """

    name: str = "base"

    @abstractmethod
    def detect(
        self,
        image_path: Path,
        recording_name: str,
        params: DetectionParams,
        token: CancellationToken | None = None,
    ) -> DetectionResult:
        """Detect spots, link them into tracks and measure the tracks.

        Args:
            image_path: Image stack of the recording.
            recording_name: Name stored on every track.
            params: Detection and linking parameters.
            token: Cooperative cancellation token.

        Returns:
            DetectionResult for the recording.

        Raises:
            DetectionError: If the recording cannot be processed.
            CancelledError: If ``token`` was cancelled during detection.
        """
