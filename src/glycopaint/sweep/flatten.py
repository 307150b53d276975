"""Flatten sweep results into case-tagged tables.

Each case directory under ``Sweep/`` (named ``[parameter]-[value]``) gets
square generation, a ``Case`` column in its experiment tables and
case-level concatenations. The case tables are then concatenated into the
sweep root so all cases can be compared from one set of files.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Sequence

from glycopaint.core.exceptions import PaintError
from glycopaint.core.schema import PROJECT_LEVEL_FILES
from glycopaint.io.concatenate import add_case, concatenate_csv_files, concatenate_named_csv_files
from glycopaint.squares.generate import generate_squares

logger = logging.getLogger(__name__)

CASE_PREFIX = "["


def case_directories(sweep_root: Path) -> list[Path]:
    """Case directories of a sweep, sorted by name."""
    sweep_root = Path(sweep_root)
    if not sweep_root.is_dir():
        return []
    return sorted(
        d for d in sweep_root.iterdir() if d.is_dir() and d.name.startswith(CASE_PREFIX)
    )


def flatten_case(case_dir: Path, experiment_names: Sequence[str], delete_subdirs: bool = True) -> None:
    """Generate squares in one case directory and tag its tables.

    Raises:
        PaintError: If square generation or concatenation fails.
    """
    case_dir = Path(case_dir)
    result = generate_squares(case_dir, experiment_names)
    if not result.succeeded:
        raise PaintError(
            f"Square generation failed in {case_dir.name} for "
            f"{', '.join(result.failed_experiments)}"
        )
    for file_name in PROJECT_LEVEL_FILES:
        add_case(case_dir, file_name, experiment_names, case_dir.name)
    for file_name in PROJECT_LEVEL_FILES:
        concatenate_named_csv_files(case_dir, file_name, experiment_names)
    if delete_subdirs:
        for name in experiment_names:
            shutil.rmtree(case_dir / name, ignore_errors=True)


def flatten_sweep(
    sweep_root: Path,
    experiment_names: Sequence[str],
    delete_subdirs: bool = True,
    cases: Sequence[Path] | None = None,
) -> list[str]:
    """Flatten the cases of a sweep and combine them.

    A failing case is logged and left out; the others continue.

    Args:
        sweep_root: The ``Sweep`` directory of a project.
        experiment_names: Experiments present in every case.
        delete_subdirs: Remove per-experiment directories once a case is
            flattened.
        cases: Case directories to flatten. None flattens every case
            directory found under ``sweep_root``.

    Returns:
        Names of the cases that were flattened.
    """
    sweep_root = Path(sweep_root)
    flattened: list[str] = []
    case_dirs = case_directories(sweep_root) if cases is None else [Path(c) for c in cases]
    for case_dir in case_dirs:
        logger.info("Flattening sweep case %s", case_dir.name)
        try:
            flatten_case(case_dir, experiment_names, delete_subdirs)
            flattened.append(case_dir.name)
        except PaintError as exc:
            logger.error("Failed to flatten %s: %s", case_dir.name, exc)

    if flattened:
        for file_name in PROJECT_LEVEL_FILES:
            try:
                concatenate_csv_files(
                    [sweep_root / case / file_name for case in flattened],
                    sweep_root / file_name,
                )
            except PaintError as exc:
                logger.error("Failed to combine %s across cases: %s", file_name, exc)
    return flattened
