"""Sweep orchestrator: one isolated pipeline run per (parameter, value).

Parameters are swept one at a time against the same baseline, never in
combination. For every value a sandbox ``Sweep/[parameter]-[value]`` is
created holding a configuration copy with the value applied and copies of
the experiments' metadata tables; the full pipeline then runs rooted at the
sandbox. The configuration handle gets each parameter's original value
back once the parameter is done and its whole document back when the sweep
ends, however it ends.
"""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from glycopaint.core.config import PaintConfig
from glycopaint.core.exceptions import PaintError
from glycopaint.core.schema import (
    CONFIG_FILE,
    EXPERIMENT_INFO_CSV,
    SWEEP_CONFIG_FILE,
    SWEEP_DIR,
    SWEEP_SUMMARY_CSV,
)
from glycopaint.io.tables import write_table
from glycopaint.sweep.flatten import flatten_sweep
from glycopaint.sweep.specification import SweepSpecification, load_sweep_specification
from glycopaint.tracking.base_engine import BaseDetectionEngine
from glycopaint.tracking.project import run_project
from glycopaint.tracking.runner import BoundedTaskRunner, CancellationToken

logger = logging.getLogger(__name__)

SUMMARY_COLS = ("Parameter", "Value", "Result Directory", "Status")
SUCCESS = "SUCCESS"
FAILED = "FAILED"


def case_label(parameter: str, value: int | float) -> str:
    """Directory name and ``Case`` label of one sweep run."""
    return f"[{parameter}]-[{value}]"


@dataclass(frozen=True)
class SweepCase:
    """Outcome of one (parameter, value) run."""

    parameter: str
    value: int | float
    directory: Path
    succeeded: bool

    @property
    def label(self) -> str:
        return case_label(self.parameter, self.value)

    def to_row(self) -> dict[str, str]:
        return {
            "Parameter": self.parameter,
            "Value": str(self.value),
            "Result Directory": str(self.directory),
            "Status": SUCCESS if self.succeeded else FAILED,
        }


@dataclass
class SweepSummary:
    """Summary of a sweep; the summary table on disk mirrors ``cases``."""

    cases: list[SweepCase] = field(default_factory=list)
    summary_path: Path | None = None
    cancelled: bool = False
    flattened: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return bool(self.cases) and not self.cancelled and all(c.succeeded for c in self.cases)


def prepare_sandbox(
    project_root: Path,
    sandbox: Path,
    config: PaintConfig,
    experiment_names: Sequence[str],
) -> PaintConfig:
    """Recreate ``sandbox`` with a configuration copy and metadata copies.

    Returns:
        Handle on the configuration written into the sandbox.
    """
    if sandbox.exists():
        shutil.rmtree(sandbox)
    sandbox.mkdir(parents=True)
    sandbox_config = config.copy(path=sandbox / CONFIG_FILE)
    sandbox_config.save()
    for name in experiment_names:
        src = project_root / name / EXPERIMENT_INFO_CSV
        if not src.is_file():
            logger.warning("%s not found for %s at %s", EXPERIMENT_INFO_CSV, name, src)
            continue
        (sandbox / name).mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, sandbox / name / EXPERIMENT_INFO_CSV)
    return sandbox_config


def write_summary(cases: Sequence[SweepCase], path: Path) -> Path:
    return write_table((c.to_row() for c in cases), path, SUMMARY_COLS)


def run_sweep(
    project_root: Path,
    images_root: Path,
    experiment_names: Sequence[str],
    engine: BaseDetectionEngine,
    spec: SweepSpecification | None = None,
    config: PaintConfig | None = None,
    cancel_token: CancellationToken | None = None,
    runner: BoundedTaskRunner | None = None,
    flatten: bool = True,
    delete_subdirs: bool = True,
    progress_callback: Callable[[str, int | float, bool], None] | None = None,
) -> SweepSummary:
    """Run the pipeline once per enabled parameter value.

    Args:
        project_root: Project directory with the experiments and baseline
            configuration.
        images_root: Directory with one image directory per experiment.
        experiment_names: Experiments included in every run.
        engine: Detection engine.
        spec: Sweep to run. None reads ``Sweep Configuration.json`` from
            the project root.
        config: Baseline configuration handle. None opens the project's.
        cancel_token: Stops the sweep when cancelled.
        runner: Bounded runner for the recording tasks.
        flatten: Flatten the results when every run succeeded.
        delete_subdirs: Passed to the flattener.
        progress_callback: Called with (parameter, value, succeeded) after
            each run.

    Returns:
        SweepSummary with one case per run.

    Raises:
        SweepConfigError: If no specification is given and the project's
            sweep document is missing or malformed.
    """
    start = time.monotonic()
    project_root = Path(project_root)
    if spec is None:
        spec = load_sweep_specification(project_root / SWEEP_CONFIG_FILE)
    if config is None:
        config = PaintConfig.for_project(project_root)

    sweep_root = project_root / SWEEP_DIR
    summary = SweepSummary()
    active = spec.active()
    if not active:
        logger.info("Sweep has no active parameters")
        summary.summary_path = write_summary([], sweep_root / SWEEP_SUMMARY_CSV)
        summary.elapsed_seconds = round(time.monotonic() - start, 3)
        return summary

    section = spec.target_section
    try:
        with config.checkpoint():
            for parameter in active:
                with config.override(section, parameter.name, parameter.values[0]) as baseline:
                    logger.info(
                        "Sweeping %s over %s (baseline %r)",
                        parameter.name, list(parameter.values), baseline,
                    )
                    for value in parameter.values:
                        if cancel_token is not None and cancel_token.cancelled:
                            summary.cancelled = True
                            break
                        summary.cases.append(
                            _run_case(
                                project_root, images_root, experiment_names, engine,
                                config, section, parameter.name, value,
                                cancel_token, runner,
                            )
                        )
                        if progress_callback:
                            progress_callback(parameter.name, value, summary.cases[-1].succeeded)
                if summary.cancelled:
                    break
    finally:
        logger.info("Configuration restored to project root %s", project_root)
        summary.summary_path = write_summary(summary.cases, sweep_root / SWEEP_SUMMARY_CSV)

    if summary.succeeded and flatten:
        summary.flattened = flatten_sweep(
            sweep_root, experiment_names, delete_subdirs,
            cases=[c.directory for c in summary.cases],
        )
    elif not summary.succeeded:
        failed = [c.label for c in summary.cases if not c.succeeded]
        logger.warning("Sweep not flattened; failed runs: %s", ", ".join(failed) or "none")

    summary.elapsed_seconds = round(time.monotonic() - start, 3)
    return summary


def _run_case(
    project_root: Path,
    images_root: Path,
    experiment_names: Sequence[str],
    engine: BaseDetectionEngine,
    config: PaintConfig,
    section: str,
    parameter: str,
    value: int | float,
    cancel_token: CancellationToken | None,
    runner: BoundedTaskRunner | None,
) -> SweepCase:
    sandbox = project_root / SWEEP_DIR / case_label(parameter, value)
    logger.info("Running sweep case %s", sandbox.name)
    config.set(section, parameter, value)
    try:
        sandbox_config = prepare_sandbox(project_root, sandbox, config, experiment_names)
        result = run_project(
            project_root,
            images_root,
            experiment_names,
            engine,
            config=sandbox_config,
            sweep_dir=sandbox,
            cancel_token=cancel_token,
            runner=runner,
        )
        succeeded = result.succeeded
    except (PaintError, OSError) as exc:
        logger.error("Sweep case %s failed: %s", sandbox.name, exc, exc_info=True)
        succeeded = False
    return SweepCase(parameter, value, sandbox, succeeded)
