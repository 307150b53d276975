"""Recording pipeline: run detection on every recording of an experiment.

For each row of ``Experiment Info.csv`` flagged for processing, the
detection engine runs under :func:`~glycopaint.tracking.runner.run_bounded`.
Per-recording track tables are written as soon as they are available and
concatenated into ``All Tracks.csv`` once every recording has been
attempted. ``All Recordings.csv`` is rewritten after every recording so it
always reflects the rows completed so far.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

from glycopaint.core.config import DEFAULTS, PAINT, TRACKMATE, PaintConfig
from glycopaint.core.exceptions import ConcatenationError
from glycopaint.core.models import Recording
from glycopaint.core.schema import OUTPUT_DIR, PARAMETERS_USED_FILE, RECORDINGS_CSV, TRACKS_CSV, TRACKS_SUFFIX
from glycopaint.io.concatenate import concatenate_csv_files
from glycopaint.io.tables import read_experiment_info, write_recordings, write_tracks
from glycopaint.tracking.base_engine import BaseDetectionEngine, DetectionParams, DetectionResult
from glycopaint.tracking.runner import BoundedTaskRunner, CancellationToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExperimentRunResult:
    """Result of running the pipeline over one experiment.

    Attributes:
        experiment: Experiment name.
        recordings_processed: Recordings that produced tracks.
        recordings_failed: Recordings that failed or timed out.
        recordings_skipped: Recordings not flagged for processing.
        cancelled: Whether the run was stopped by cancellation.
        succeeded: True if nothing failed and the track tables were combined.
        elapsed_seconds: Wall-clock time in seconds.
        warnings: List of warning messages.
    """

    experiment: str
    recordings_processed: int
    recordings_failed: int
    recordings_skipped: int
    cancelled: bool
    succeeded: bool
    elapsed_seconds: float
    warnings: list[str] = field(default_factory=list)


def _apply_result(recording: Recording, result: DetectionResult) -> None:
    recording.number_of_spots = result.number_of_spots
    recording.number_of_tracks = result.number_of_tracks
    recording.number_of_spots_in_all_tracks = result.number_of_spots_in_all_tracks
    recording.number_of_frames = result.number_of_frames
    recording.run_time = int(round(result.duration_seconds))
    recording.timestamp = datetime.now().isoformat(timespec="seconds")
    recording.exclude = False


def write_parameters_used(experiment_path: Path, config: PaintConfig, engine_name: str) -> Path:
    """Record the detection settings of a run in ``Output/Parameters Used.txt``."""
    path = Path(experiment_path) / OUTPUT_DIR / PARAMETERS_USED_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [
        f"Experiment: {Path(experiment_path).name}",
        f"Engine: {engine_name}",
        f"Run at: {datetime.now().isoformat(timespec='seconds')}",
        "",
    ]
    for key in DEFAULTS[TRACKMATE]:
        lines.append(f"{key}: {config.get(TRACKMATE, key, DEFAULTS[TRACKMATE][key])}")
    path.write_text("\n".join(lines) + "\n")
    return path


def run_experiment(
    experiment_path: Path,
    images_path: Path,
    engine: BaseDetectionEngine,
    config: PaintConfig,
    cancel_token: CancellationToken | None = None,
    runner: BoundedTaskRunner | None = None,
    progress_callback: Callable[[int, int, str], None] | None = None,
) -> ExperimentRunResult:
    """Run detection over every flagged recording of an experiment.

    A recording that fails, raises or exceeds the time budget gets a row
    with zeroed metrics and the loop continues. Cancellation stops the loop
    without a row for the recording in flight and skips the final
    concatenation.

    Args:
        experiment_path: Directory holding ``Experiment Info.csv``; outputs
            are written here.
        images_path: Directory holding the image stacks.
        engine: Detection engine.
        config: Configuration handle (``TrackMate`` and ``Paint`` sections).
        cancel_token: Set by the caller to stop the run.
        runner: Bounded runner; a default one-second poller if None.
        progress_callback: Optional callback(current, total, recording_name).

    Returns:
        ExperimentRunResult with counts and status.

    Raises:
        ExperimentNotFoundError: If the experiment or its metadata is missing.
        SchemaError: If the metadata table lacks columns.
    """
    start = time.monotonic()
    experiment_path = Path(experiment_path)
    images_path = Path(images_path)
    experiment = experiment_path.name
    runner = runner or BoundedTaskRunner()

    infos = read_experiment_info(experiment_path)
    budget = config.get_int(TRACKMATE, "Max Seconds Per Recording", DEFAULTS[TRACKMATE]["Max Seconds Per Recording"])
    extension = config.get_string(PAINT, "Image File Extension", DEFAULTS[PAINT]["Image File Extension"])
    recordings_file = experiment_path / RECORDINGS_CSV

    rows: list[Recording] = []
    write_recordings(rows, recordings_file)
    write_parameters_used(experiment_path, config, engine.name)

    warnings: list[str] = []
    track_files: list[Path] = []
    processed = failed = skipped = 0
    cancelled = False
    total = len(infos)

    for i, info in enumerate(infos):
        if cancel_token is not None and cancel_token.cancelled:
            cancelled = True
            break

        recording = Recording(info=info, experiment_name=experiment)
        if not info.process:
            skipped += 1
            rows.append(recording)
            write_recordings(rows, recordings_file)
            if progress_callback:
                progress_callback(i + 1, total, info.recording_name)
            continue

        params = DetectionParams.from_config(config, info.threshold)
        image_path = images_path / f"{info.recording_name}{extension}"
        outcome: dict[str, DetectionResult] = {}
        worker_token = CancellationToken()

        def _task(
            image_path: Path = image_path,
            name: str = info.recording_name,
            params: DetectionParams = params,
            token: CancellationToken = worker_token,
        ) -> None:
            outcome["result"] = engine.detect(image_path, name, params, token)

        logger.info("Processing %s/%s", experiment, info.recording_name)
        finished = runner.run(
            _task,
            budget,
            cancel_token,
            token=worker_token,
            name=f"{experiment}/{info.recording_name}",
        )

        if not finished and cancel_token is not None and cancel_token.cancelled:
            cancelled = True
            logger.warning("Run of %s cancelled during %s", experiment, info.recording_name)
            break

        result = outcome.get("result")
        if not finished or result is None:
            failed += 1
            warnings.append(f"{info.recording_name}: detection failed or timed out")
            logger.error("Recording %s/%s failed", experiment, info.recording_name)
        else:
            track_file = experiment_path / f"{info.recording_name}{TRACKS_SUFFIX}"
            write_tracks(result.tracks, track_file)
            track_files.append(track_file)
            _apply_result(recording, result)
            processed += 1
            logger.info(
                "%s/%s: %d spots, %d tracks in %.1fs",
                experiment, info.recording_name, result.number_of_spots,
                result.number_of_tracks, result.duration_seconds,
            )

        rows.append(recording)
        write_recordings(rows, recordings_file)
        if progress_callback:
            progress_callback(i + 1, total, info.recording_name)

    succeeded = not cancelled and failed == 0
    if not cancelled:
        tracks_file = experiment_path / TRACKS_CSV
        if track_files:
            try:
                concatenate_csv_files(track_files, tracks_file, delete_inputs=True)
            except ConcatenationError as exc:
                logger.error("Could not combine track files of %s: %s", experiment, exc)
                warnings.append(f"{TRACKS_CSV}: {exc}")
                succeeded = False
        else:
            write_tracks([], tracks_file)

    return ExperimentRunResult(
        experiment=experiment,
        recordings_processed=processed,
        recordings_failed=failed,
        recordings_skipped=skipped,
        cancelled=cancelled,
        succeeded=succeeded,
        elapsed_seconds=round(time.monotonic() - start, 3),
        warnings=warnings,
    )
