"""Run the recording pipeline over the experiments of a project."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from glycopaint.core.config import DEFAULTS, PAINT, PaintConfig
from glycopaint.core.exceptions import ConcatenationError, ExperimentNotFoundError
from glycopaint.core.schema import EXPERIMENT_INFO_CSV, RECORDINGS_CSV, TRACKS_CSV
from glycopaint.io.concatenate import concatenate_named_csv_files
from glycopaint.io.tables import read_experiment_info
from glycopaint.squares.generate import validate_experiments
from glycopaint.tracking.base_engine import BaseDetectionEngine
from glycopaint.tracking.invoker import ExperimentRunResult, run_experiment
from glycopaint.tracking.runner import BoundedTaskRunner, CancellationToken

logger = logging.getLogger(__name__)

PIPELINE_PROJECT_FILES = (RECORDINGS_CSV, TRACKS_CSV, EXPERIMENT_INFO_CSV)


@dataclass
class ProjectRunResult:
    """Summary of a pipeline run over a project."""

    root: Path
    experiments: list[ExperimentRunResult] = field(default_factory=list)
    cancelled: bool = False
    succeeded: bool = True
    elapsed_seconds: float = 0.0
    warnings: list[str] = field(default_factory=list)


def validate_image_root(
    root: Path,
    images_root: Path,
    experiment_names: Sequence[str],
    extension: str,
) -> None:
    """Check that every recording flagged for processing has its image stack.

    Raises:
        ExperimentNotFoundError: Naming the experiments with a missing image
            directory or image file, and what is missing.
    """
    missing: list[str] = []
    problems: list[str] = []
    for name in experiment_names:
        image_dir = Path(images_root) / name
        if not image_dir.is_dir():
            missing.append(name)
            problems.append(f"no image directory {image_dir}")
            continue
        absent = [
            info.recording_name
            for info in read_experiment_info(Path(root) / name)
            if info.process and not (image_dir / f"{info.recording_name}{extension}").is_file()
        ]
        if absent:
            missing.append(name)
            problems.append(f"no {extension} image for {', '.join(absent)} in {image_dir}")
    if missing:
        raise ExperimentNotFoundError(", ".join(missing), reason="; ".join(problems))


def run_project(
    project_root: Path,
    images_root: Path,
    experiment_names: Sequence[str],
    engine: BaseDetectionEngine,
    config: PaintConfig | None = None,
    sweep_dir: Path | None = None,
    cancel_token: CancellationToken | None = None,
    runner: BoundedTaskRunner | None = None,
    progress_callback: Callable[[int, int, str], None] | None = None,
) -> ProjectRunResult:
    """Run :func:`run_experiment` for each experiment, then combine the tables.

    Args:
        project_root: Project directory.
        images_root: Directory with one image directory per experiment.
        experiment_names: Experiments to run, in order.
        engine: Detection engine.
        config: Configuration handle. None opens the one in the run root.
        sweep_dir: Run rooted here instead of ``project_root`` (sandboxed
            sweep runs); experiments are looked up under this directory.
        cancel_token: Stops the run when cancelled.
        runner: Bounded runner passed to every experiment.
        progress_callback: Optional callback(current, total, recording_name),
            forwarded to each experiment.

    Returns:
        ProjectRunResult; ``succeeded`` is False if any experiment failed,
        the run was cancelled or the project tables could not be combined.

    Raises:
        ProjectNotFoundError: If the run root does not exist.
        ExperimentNotFoundError: If an experiment lacks its metadata table,
            its image directory or the image of a flagged recording.
    """
    start = time.monotonic()
    root = Path(sweep_dir) if sweep_dir is not None else Path(project_root)
    validate_experiments(root, experiment_names, (EXPERIMENT_INFO_CSV,))
    if config is None:
        config = PaintConfig.for_project(root)
    extension = config.get_string(PAINT, "Image File Extension", DEFAULTS[PAINT]["Image File Extension"])
    validate_image_root(root, images_root, experiment_names, extension)

    result = ProjectRunResult(root=root)
    logger.info("Running %d experiments in %s", len(experiment_names), root)

    for name in experiment_names:
        if cancel_token is not None and cancel_token.cancelled:
            result.cancelled = True
            break
        exp_result = run_experiment(
            root / name,
            Path(images_root) / name,
            engine,
            config,
            cancel_token=cancel_token,
            runner=runner,
            progress_callback=progress_callback,
        )
        result.experiments.append(exp_result)
        result.warnings.extend(f"{name}: {w}" for w in exp_result.warnings)
        if exp_result.cancelled:
            result.cancelled = True
            break
        if not exp_result.succeeded:
            logger.error("Experiment %s did not complete cleanly", name)

    result.succeeded = (
        not result.cancelled
        and len(result.experiments) == len(experiment_names)
        and all(r.succeeded for r in result.experiments)
    )

    if not result.cancelled:
        completed = [r.experiment for r in result.experiments if (root / r.experiment / TRACKS_CSV).is_file()]
        if completed:
            for file_name in PIPELINE_PROJECT_FILES:
                try:
                    concatenate_named_csv_files(root, file_name, completed)
                except ConcatenationError as exc:
                    logger.error("Failed to create project-level %s: %s", file_name, exc)
                    result.warnings.append(f"{file_name}: {exc}")
                    result.succeeded = False

    result.elapsed_seconds = round(time.monotonic() - start, 3)
    return result
