"""Schema-validated reading and writing of glycopaint's flat tables.

All tables are comma-separated with a header row. Cells are written as
text: floats with three decimals, integer columns without decimals,
booleans as ``True``/``False`` and missing values (None, NaN) as empty
cells.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from glycopaint.core.exceptions import ExperimentNotFoundError, SchemaError
from glycopaint.core.models import ExperimentInfo, Recording, Square, Track
from glycopaint.core.schema import (
    EXPERIMENT_INFO_COLS,
    EXPERIMENT_INFO_CSV,
    INTEGER_COLS,
    RECORDING_COLS,
    SQUARE_COLS,
    TRACK_COLS,
)

_TEXT_TRACK_COLS = frozenset({"Unique Key", "Recording Name", "Track Label"})


def format_cell(column: str, value: Any) -> str:
    """Render one cell value as table text."""
    if value is None:
        return ""
    if isinstance(value, (bool, np.bool_)):
        return "True" if value else "False"
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        if math.isnan(value) or math.isinf(value):
            return ""
        if column in INTEGER_COLS and float(value).is_integer():
            return str(int(value))
        return f"{value:.3f}"
    return str(value)


def write_table(
    rows: Iterable[Mapping[str, Any]],
    path: Path,
    columns: Sequence[str],
) -> Path:
    """Write ``rows`` to ``path`` with exactly ``columns`` as header.

    Keys not in ``columns`` are dropped; missing keys become empty cells.

    Returns:
        The path written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records = [
        [format_cell(col, row.get(col)) for col in columns] for row in rows
    ]
    frame = pd.DataFrame(records, columns=list(columns), dtype=object)
    frame.to_csv(path, index=False)
    return path


def write_frame(frame: pd.DataFrame, path: Path, columns: Sequence[str] | None = None) -> Path:
    """Write a DataFrame using the same cell formatting as :func:`write_table`."""
    columns = list(columns) if columns is not None else list(frame.columns)
    return write_table(frame.to_dict("records"), path, columns)


def read_table(path: Path, required: Sequence[str] | None = None) -> pd.DataFrame:
    """Read a table as strings, checking that ``required`` columns exist.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        SchemaError: If any required column is missing.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as exc:
        raise SchemaError(str(path), list(required or [])) from exc
    if required:
        missing = [col for col in required if col not in frame.columns]
        if missing:
            raise SchemaError(str(path), missing)
    return frame


# --- Experiment info ------------------------------------------------------------


def read_experiment_info(experiment_path: Path) -> list[ExperimentInfo]:
    """Read the recording-metadata table of one experiment.

    Raises:
        ExperimentNotFoundError: If the directory or its table is missing.
        SchemaError: If metadata columns are missing.
    """
    experiment_path = Path(experiment_path)
    info_path = experiment_path / EXPERIMENT_INFO_CSV
    if not experiment_path.is_dir():
        raise ExperimentNotFoundError(experiment_path.name, "directory does not exist")
    if not info_path.exists():
        raise ExperimentNotFoundError(experiment_path.name, f"no {EXPERIMENT_INFO_CSV}")
    frame = read_table(info_path, EXPERIMENT_INFO_COLS)
    return [
        ExperimentInfo.from_row(row)
        for row in frame.to_dict("records")
        if str(row.get("Recording Name", "")).strip()
    ]


def write_experiment_info(infos: Iterable[ExperimentInfo], path: Path) -> Path:
    return write_table((info.to_row() for info in infos), path, EXPERIMENT_INFO_COLS)


# --- Recordings ---------------------------------------------------------------------


def read_recordings(path: Path, experiment_name: str = "") -> list[Recording]:
    frame = read_table(path, RECORDING_COLS)
    return [Recording.from_row(row, experiment_name) for row in frame.to_dict("records")]


def write_recordings(recordings: Iterable[Recording], path: Path) -> Path:
    return write_table((rec.to_row() for rec in recordings), path, RECORDING_COLS)


# --- Tracks ---------------------------------------------------------------------------


def tracks_to_frame(tracks: Iterable[Track]) -> pd.DataFrame:
    """Convert Track records to a DataFrame with the track schema."""
    return pd.DataFrame([t.to_row() for t in tracks], columns=list(TRACK_COLS))


def read_tracks(path: Path) -> pd.DataFrame:
    """Read a track table with numeric columns converted to numbers."""
    frame = read_table(path, TRACK_COLS)
    for col in TRACK_COLS:
        if col not in _TEXT_TRACK_COLS:
            frame[col] = pd.to_numeric(frame[col], errors="coerce")
    return frame


def write_tracks(tracks: Iterable[Track] | pd.DataFrame, path: Path) -> Path:
    frame = tracks if isinstance(tracks, pd.DataFrame) else tracks_to_frame(tracks)
    return write_frame(frame, path, TRACK_COLS)


# --- Squares --------------------------------------------------------------------------


def write_squares(squares: Iterable[Square], path: Path) -> Path:
    return write_table((sq.to_row() for sq in squares), path, SQUARE_COLS)
