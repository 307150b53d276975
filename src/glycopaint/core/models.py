"""Data models for the glycopaint core module."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from glycopaint.core.schema import EXPERIMENT_INFO_COLS

_TRUE_STRINGS = frozenset({"true", "yes", "y", "1", "t"})


def parse_bool(value: Any) -> bool:
    """Interpret a table cell as a boolean (``true/yes/y/1``, case-insensitive)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    return str(value).strip().lower() in _TRUE_STRINGS


def parse_float(value: Any, default: float = math.nan) -> float:
    """Interpret a table cell as a float; blanks and garbage become ``default``."""
    if value is None:
        return default
    text = str(value).strip()
    if not text:
        return default
    try:
        return float(text)
    except ValueError:
        return default


def parse_int(value: Any, default: int = 0) -> int:
    """Interpret a table cell as an int, accepting ``"3.0"`` style values."""
    number = parse_float(value)
    if math.isnan(number):
        return default
    return int(number)


@dataclass(frozen=True)
class ExperimentInfo:
    """One row of an experiment's recording-metadata table.

    Attributes:
        recording_name: Base name of the image file (without extension).
        condition_number: Experimental condition index.
        replicate_number: Replicate index within the condition.
        probe_name: Name of the probe used.
        probe_type: Probe category (e.g. "Simple", "Epitope").
        cell_type: Cell line or type imaged.
        adjuvant: Adjuvant applied, if any.
        concentration: Probe concentration; divisor of the density.
        process: Whether the recording should be run through detection.
        threshold: Spot-detection quality threshold for this recording.
        raw: The original cell values, written back verbatim.
    """

    recording_name: str
    condition_number: int = 0
    replicate_number: int = 0
    probe_name: str = ""
    probe_type: str = ""
    cell_type: str = ""
    adjuvant: str = ""
    concentration: float = 1.0
    process: bool = True
    threshold: float = 0.0
    raw: dict[str, str] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.recording_name:
            raise ValueError("recording_name must not be empty")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ExperimentInfo:
        """Build from a table row keyed by ``EXPERIMENT_INFO_COLS``."""
        raw = {col: "" if row.get(col) is None else str(row.get(col)) for col in EXPERIMENT_INFO_COLS}
        return cls(
            recording_name=raw["Recording Name"].strip(),
            condition_number=parse_int(raw["Condition Number"]),
            replicate_number=parse_int(raw["Replicate Number"]),
            probe_name=raw["Probe Name"],
            probe_type=raw["Probe Type"],
            cell_type=raw["Cell Type"],
            adjuvant=raw["Adjuvant"],
            concentration=parse_float(raw["Concentration"], default=1.0),
            process=parse_bool(raw["Process Flag"]),
            threshold=parse_float(raw["Threshold"], default=0.0),
            raw=raw,
        )

    def to_row(self) -> dict[str, Any]:
        """Return the metadata columns, preferring the original cell text."""
        if self.raw:
            return {col: self.raw.get(col, "") for col in EXPERIMENT_INFO_COLS}
        return {
            "Recording Name": self.recording_name,
            "Condition Number": self.condition_number,
            "Replicate Number": self.replicate_number,
            "Probe Name": self.probe_name,
            "Probe Type": self.probe_type,
            "Cell Type": self.cell_type,
            "Adjuvant": self.adjuvant,
            "Concentration": self.concentration,
            "Process Flag": self.process,
            "Threshold": self.threshold,
        }


@dataclass
class Recording:
    """One imaging acquisition and the metrics derived from it.

    Created from its metadata row, filled in by the recording pipeline and
    later by square generation. NaN marks a metric not (yet) computed.
    """

    info: ExperimentInfo
    experiment_name: str = ""
    number_of_spots: int = 0
    number_of_tracks: int = 0
    number_of_tracks_in_background: int | None = None
    number_of_squares_in_background: int | None = None
    average_tracks_in_background: float = math.nan
    number_of_spots_in_all_tracks: int = 0
    number_of_frames: int = 0
    run_time: int = 0
    timestamp: str = ""
    exclude: bool = False
    tau: float = math.nan
    r_squared: float = math.nan
    density: float = math.nan

    @property
    def name(self) -> str:
        return self.info.recording_name

    @property
    def concentration(self) -> float:
        return self.info.concentration

    @classmethod
    def from_row(cls, row: Mapping[str, Any], experiment_name: str = "") -> Recording:
        """Build from a row of the recordings table."""
        background_tracks = parse_float(row.get("Number of Tracks in Background"))
        background_squares = parse_float(row.get("Number of Squares in Background"))
        return cls(
            info=ExperimentInfo.from_row(row),
            experiment_name=experiment_name,
            number_of_spots=parse_int(row.get("Number of Spots")),
            number_of_tracks=parse_int(row.get("Number of Tracks")),
            number_of_tracks_in_background=(
                None if math.isnan(background_tracks) else int(background_tracks)
            ),
            number_of_squares_in_background=(
                None if math.isnan(background_squares) else int(background_squares)
            ),
            average_tracks_in_background=parse_float(row.get("Average Tracks in Background")),
            number_of_spots_in_all_tracks=parse_int(row.get("Number of Spots in All Tracks")),
            number_of_frames=parse_int(row.get("Number of Frames")),
            run_time=parse_int(row.get("Run Time")),
            timestamp="" if row.get("Time Stamp") is None else str(row.get("Time Stamp")),
            exclude=parse_bool(row.get("Exclude")),
            tau=parse_float(row.get("Tau")),
            r_squared=parse_float(row.get("R Squared")),
            density=parse_float(row.get("Density")),
        )

    def to_row(self) -> dict[str, Any]:
        row = self.info.to_row()
        row.update({
            "Number of Spots": self.number_of_spots,
            "Number of Tracks": self.number_of_tracks,
            "Number of Tracks in Background": self.number_of_tracks_in_background,
            "Number of Squares in Background": self.number_of_squares_in_background,
            "Average Tracks in Background": self.average_tracks_in_background,
            "Number of Spots in All Tracks": self.number_of_spots_in_all_tracks,
            "Number of Frames": self.number_of_frames,
            "Run Time": self.run_time,
            "Time Stamp": self.timestamp,
            "Exclude": self.exclude,
            "Tau": self.tau,
            "R Squared": self.r_squared,
            "Density": self.density,
        })
        return row


@dataclass(frozen=True)
class Track:
    """One reconstructed trajectory within a recording.

    Distances are in micrometres, durations in seconds, speeds in
    micrometres per second, diffusion coefficients in um^2/s.
    """

    recording_name: str
    track_id: int
    number_of_spots: int
    number_of_gaps: int = 0
    longest_gap: int = 0
    track_duration: float = 0.0
    x_location: float = math.nan
    y_location: float = math.nan
    displacement: float = math.nan
    max_speed: float = math.nan
    median_speed: float = math.nan
    diffusion_coefficient: float = math.nan
    diffusion_coefficient_ext: float = math.nan
    total_distance: float = math.nan
    confinement_ratio: float = math.nan
    square_number: int | None = None
    label_number: int | None = None

    @property
    def unique_key(self) -> str:
        return f"{self.recording_name}-{self.track_id}"

    @property
    def label(self) -> str:
        return f"Track_{self.track_id}"

    def to_row(self) -> dict[str, Any]:
        return {
            "Unique Key": self.unique_key,
            "Recording Name": self.recording_name,
            "Track Id": self.track_id,
            "Track Label": self.label,
            "Number of Spots": self.number_of_spots,
            "Number of Gaps": self.number_of_gaps,
            "Longest Gap": self.longest_gap,
            "Track Duration": self.track_duration,
            "Track X Location": self.x_location,
            "Track Y Location": self.y_location,
            "Track Displacement": self.displacement,
            "Track Max Speed": self.max_speed,
            "Track Median Speed": self.median_speed,
            "Diffusion Coefficient": self.diffusion_coefficient,
            "Diffusion Coefficient Ext": self.diffusion_coefficient_ext,
            "Total Distance": self.total_distance,
            "Confinement Ratio": self.confinement_ratio,
            "Square Number": self.square_number,
            "Label Number": self.label_number,
        }


@dataclass(eq=False)
class Square:
    """One cell of the regular grid laid over a recording.

    Squares compare by identity so they can be collected in sets while
    their statistics are still being filled in.
    """

    recording_name: str
    square_number: int
    row: int
    column: int
    x0: float
    y0: float
    x1: float
    y1: float
    label_number: int | None = None
    cell_id: int = 0
    selected: bool = False
    manually_excluded: bool = False
    image_excluded: bool = False
    number_of_tracks: int = 0
    variability: float = math.nan
    density: float = math.nan
    density_ratio: float = math.nan
    density_ratio_ori: float = math.nan
    tau: float = math.nan
    r_squared: float = math.nan
    median_diffusion_coefficient: float = math.nan
    median_diffusion_coefficient_ext: float = math.nan
    median_long_track_duration: float = math.nan
    median_short_track_duration: float = math.nan
    median_displacement: float = math.nan
    max_displacement: float = math.nan
    total_displacement: float = math.nan
    median_max_speed: float = math.nan
    max_max_speed: float = math.nan
    median_mean_speed: float = math.nan
    max_mean_speed: float = math.nan
    max_track_duration: float = math.nan
    total_track_duration: float = math.nan
    median_track_duration: float = math.nan

    @property
    def unique_key(self) -> str:
        return f"{self.recording_name}-{self.square_number}"

    def to_row(self) -> dict[str, Any]:
        return {
            "Unique Key": self.unique_key,
            "Recording Name": self.recording_name,
            "Square Number": self.square_number,
            "Row Number": self.row,
            "Column Number": self.column,
            "Label Number": self.label_number,
            "Cell ID": self.cell_id,
            "Selected": self.selected,
            "Square Manually Excluded": self.manually_excluded,
            "Image Excluded": self.image_excluded,
            "X0": self.x0,
            "Y0": self.y0,
            "X1": self.x1,
            "Y1": self.y1,
            "Number of Tracks": self.number_of_tracks,
            "Variability": self.variability,
            "Density": self.density,
            "Density Ratio": self.density_ratio,
            "Density Ratio Ori": self.density_ratio_ori,
            "Tau": self.tau,
            "R Squared": self.r_squared,
            "Median Diffusion Coefficient": self.median_diffusion_coefficient,
            "Median Diffusion Coefficient Ext": self.median_diffusion_coefficient_ext,
            "Median Long Track Duration": self.median_long_track_duration,
            "Median Short Track Duration": self.median_short_track_duration,
            "Median Displacement": self.median_displacement,
            "Max Displacement": self.max_displacement,
            "Total Displacement": self.total_displacement,
            "Median Max Speed": self.median_max_speed,
            "Max Max Speed": self.max_max_speed,
            "Median Mean Speed": self.median_mean_speed,
            "Max Mean Speed": self.max_mean_speed,
            "Max Track Duration": self.max_track_duration,
            "Total Track Duration": self.total_track_duration,
            "Median Track Duration": self.median_track_duration,
        }


@dataclass(frozen=True)
class BackgroundEstimate:
    """Outcome of the iterative background estimation.

    Attributes:
        mean: Trimmed mean track count of the background squares.
        members: Squares that survived outlier removal, in input order.
    """

    mean: float
    members: tuple[Square, ...] = ()

    @property
    def track_count(self) -> int:
        return sum(sq.number_of_tracks for sq in self.members)
