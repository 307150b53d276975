"""Square generation: divide recordings into squares and compute statistics.

Reads the ``All Recordings`` and ``All Tracks`` tables of each experiment,
writes ``All Squares``, updates tracks with their square and label numbers
and recordings with background, Tau, R² and density. Finally the four
experiment tables are concatenated at project level.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from glycopaint.core.config import GenerateSquaresConfig, PaintConfig
from glycopaint.core.exceptions import (
    ConcatenationError,
    ExperimentNotFoundError,
    ProjectNotFoundError,
)
from glycopaint.core.schema import (
    EXPERIMENT_INFO_CSV,
    PROJECT_LEVEL_FILES,
    RECORDINGS_CSV,
    TRACKS_CSV,
    SQUARES_CSV,
)
from glycopaint.io.concatenate import concatenate_named_csv_files
from glycopaint.io.tables import read_recordings, read_tracks, write_recordings, write_squares, write_tracks
from glycopaint.squares.attributes import compute_recording_attributes, compute_square_attributes
from glycopaint.squares.grid import GridDescriptor, assign_tracks_to_squares

logger = logging.getLogger(__name__)

REQUIRED_FILES = (EXPERIMENT_INFO_CSV, RECORDINGS_CSV, TRACKS_CSV)


@dataclass(frozen=True)
class SquaresResult:
    """Result of square generation over a project.

    Attributes:
        experiments_processed: Experiments whose tables were written.
        recordings_processed: Recordings divided into squares.
        squares_written: Total squares written.
        elapsed_seconds: Wall-clock time in seconds.
        failed_experiments: Names of experiments that raised.
        warnings: List of warning messages.
    """

    experiments_processed: int
    recordings_processed: int
    squares_written: int
    elapsed_seconds: float
    failed_experiments: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_experiments


def validate_experiments(
    project_root: Path,
    experiment_names: Sequence[str],
    required_files: Sequence[str] = REQUIRED_FILES,
) -> None:
    """Check that every experiment directory holds ``required_files``.

    Raises:
        ProjectNotFoundError: If ``project_root`` is not a directory.
        ExperimentNotFoundError: For the first experiment missing a file.
    """
    project_root = Path(project_root)
    if not project_root.is_dir():
        raise ProjectNotFoundError(str(project_root))
    for name in experiment_names:
        exp = project_root / name
        if not exp.is_dir():
            raise ExperimentNotFoundError(name, "directory does not exist")
        for file_name in required_files:
            if not (exp / file_name).is_file():
                raise ExperimentNotFoundError(name, f"no {file_name}")


def generate_squares_for_experiment(
    experiment_path: Path,
    settings: GenerateSquaresConfig,
) -> tuple[int, int]:
    """Generate squares for every processed, non-excluded recording.

    Returns:
        ``(recordings_processed, squares_written)``.
    """
    experiment_path = Path(experiment_path)
    grid = GridDescriptor(settings.number_of_squares_in_recording)
    recordings = read_recordings(experiment_path / RECORDINGS_CSV, experiment_path.name)
    tracks = read_tracks(experiment_path / TRACKS_CSV)
    tracks["Square Number"] = tracks["Square Number"].astype(float)
    tracks["Label Number"] = tracks["Label Number"].astype(float)

    all_squares = []
    processed = 0
    for recording in recordings:
        if not recording.info.process or recording.exclude:
            logger.debug("Skipping recording %s", recording.name)
            continue

        index = tracks.index[tracks["Recording Name"] == recording.name]
        rec_tracks = tracks.loc[index].copy()
        square_numbers = assign_tracks_to_squares(rec_tracks, grid)
        rec_tracks["Square Number"] = square_numbers.where(square_numbers >= 0).astype(float)

        duration = rec_tracks["Track Duration"]
        in_range = (duration >= settings.min_track_duration) & (duration <= settings.max_track_duration)
        stats_tracks = rec_tracks[in_range]

        squares = grid.make_squares(recording.name)
        compute_square_attributes(recording, squares, stats_tracks, grid, settings)
        compute_recording_attributes(recording, squares, stats_tracks, grid, settings)

        labels = {sq.square_number: float(sq.label_number) for sq in squares if sq.selected}
        rec_tracks["Label Number"] = rec_tracks["Square Number"].map(labels).astype(float)
        tracks.loc[index, "Square Number"] = rec_tracks["Square Number"]
        tracks.loc[index, "Label Number"] = rec_tracks["Label Number"]

        selected = sum(1 for sq in squares if sq.selected)
        logger.info(
            "%s/%s: %d tracks, %d of %d squares selected, Tau %s",
            experiment_path.name, recording.name, len(rec_tracks), selected,
            len(squares), "n/a" if math.isnan(recording.tau) else f"{recording.tau:.0f}",
        )
        all_squares.extend(squares)
        processed += 1

    write_squares(all_squares, experiment_path / SQUARES_CSV)
    write_tracks(tracks, experiment_path / TRACKS_CSV)
    write_recordings(recordings, experiment_path / RECORDINGS_CSV)
    return processed, len(all_squares)


def generate_squares(
    project_root: Path,
    experiment_names: Sequence[str],
    config: PaintConfig | None = None,
    cancel_probe: Callable[[], bool] | None = None,
    progress_callback: Callable[[int, int, str], None] | None = None,
) -> SquaresResult:
    """Generate squares for several experiments and build project-level tables.

    Args:
        project_root: Directory holding the experiment directories.
        experiment_names: Experiments to process, in order.
        config: Configuration handle. None opens the project's own.
        cancel_probe: Returns True when the run should stop.
        progress_callback: Optional callback(current, total, experiment_name).

    Returns:
        SquaresResult with statistics.

    Raises:
        ProjectNotFoundError: If ``project_root`` does not exist.
        ExperimentNotFoundError: If an experiment lacks its input tables.
    """
    start = time.monotonic()
    project_root = Path(project_root)
    validate_experiments(project_root, experiment_names)
    if config is None:
        config = PaintConfig.for_project(project_root)
    settings = GenerateSquaresConfig.from_config(config)
    side = GridDescriptor(settings.number_of_squares_in_recording).squares_per_row
    logger.info(
        "Generating %dx%d squares for %d experiments in %s",
        side, side, len(experiment_names), project_root,
    )

    warnings: list[str] = []
    failed: list[str] = []
    done: list[str] = []
    recordings_processed = 0
    squares_written = 0
    total = len(experiment_names)

    for i, name in enumerate(experiment_names):
        if cancel_probe is not None and cancel_probe():
            logger.warning("Square generation cancelled before %s", name)
            warnings.append("cancelled")
            failed.extend(experiment_names[i:])
            break
        try:
            n_rec, n_sq = generate_squares_for_experiment(project_root / name, settings)
            recordings_processed += n_rec
            squares_written += n_sq
            done.append(name)
        except Exception as exc:
            if isinstance(exc, (MemoryError, KeyboardInterrupt, SystemExit)):
                raise
            logger.error("Square generation failed for %s: %s", name, exc, exc_info=True)
            warnings.append(f"{name}: square generation failed: {exc}")
            failed.append(name)

        if progress_callback:
            progress_callback(i + 1, total, name)

    if done and not (cancel_probe is not None and cancel_probe()):
        for file_name in PROJECT_LEVEL_FILES:
            try:
                concatenate_named_csv_files(project_root, file_name, done)
            except ConcatenationError as exc:
                logger.error("Failed to create project-level %s: %s", file_name, exc)
                warnings.append(f"{file_name}: {exc}")

    return SquaresResult(
        experiments_processed=len(done),
        recordings_processed=recordings_processed,
        squares_written=squares_written,
        elapsed_seconds=round(time.monotonic() - start, 3),
        failed_experiments=failed,
        warnings=warnings,
    )

