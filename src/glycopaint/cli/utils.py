"""Shared CLI utilities: Rich console, logging, error handling, project helpers."""

from __future__ import annotations

import functools
import logging
import traceback
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

if TYPE_CHECKING:
    from glycopaint.tracking.base_engine import BaseDetectionEngine

console = Console()

# Set by the --verbose flag on the top-level CLI group.
verbose: bool = False


def _trackpy_engine() -> BaseDetectionEngine:
    from glycopaint.tracking.trackpy_adapter import TrackpyEngine

    return TrackpyEngine()


# Detection engines selectable with --engine.
ENGINES: dict[str, Callable[[], BaseDetectionEngine]] = {
    "trackpy": _trackpy_engine,
}


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route log records through Rich on the shared console."""
    root = logging.getLogger()
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=console, show_path=False, rich_tracebacks=verbose)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
    root.setLevel(level)


def apply_project_log_level(project: Path) -> None:
    """Use the project's ``Paint/Log Level`` unless --verbose was given.

    Projects without a configuration document keep the current level.
    """
    from glycopaint.core.config import DEFAULTS, PAINT, PaintConfig
    from glycopaint.core.schema import CONFIG_FILE

    if verbose or not (Path(project) / CONFIG_FILE).is_file():
        return
    config = PaintConfig.for_project(project)
    name = config.get_string(PAINT, "Log Level", DEFAULTS[PAINT]["Log Level"]).strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        logging.getLogger(__name__).warning("Unknown log level %r in %s, keeping INFO", name, CONFIG_FILE)
        return
    configure_logging(name)


def make_engine(name: str) -> BaseDetectionEngine:
    """Instantiate a detection engine registered in ``ENGINES``."""
    return ENGINES[name]()


def resolve_experiments(project: Path, names: tuple[str, ...] | list[str]) -> list[str]:
    """Experiments to process: the given names, or every directory with metadata.

    Raises:
        ExperimentNotFoundError: If no experiment can be found.
    """
    from glycopaint.core.exceptions import ExperimentNotFoundError
    from glycopaint.core.schema import EXPERIMENT_INFO_CSV, SWEEP_DIR

    if names:
        return list(names)
    found = sorted(
        d.name for d in Path(project).iterdir()
        if d.is_dir() and d.name != SWEEP_DIR and (d / EXPERIMENT_INFO_CSV).is_file()
    )
    if not found:
        raise ExperimentNotFoundError(reason=f"no experiments with {EXPERIMENT_INFO_CSV} in {project}")
    return found


def error_handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator wrapping CLI commands with standard error handling.

    Catches PaintError (exit 1) and unexpected exceptions (exit 2).
    With --verbose, unexpected errors include the full traceback.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        from glycopaint.core.exceptions import PaintError

        try:
            return func(*args, **kwargs)
        except SystemExit:
            raise
        except PaintError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)
        except Exception as e:
            if verbose:
                console.print(f"[red]Internal error:[/red] {e}")
                console.print(traceback.format_exc())
            else:
                console.print(
                    f"[red]Internal error:[/red] {type(e).__name__}: {e}\n"
                    "[dim]Use --verbose for the full traceback.[/dim]"
                )
            raise SystemExit(2)

    return wrapper


def make_progress() -> Progress:
    """Create a Rich progress bar for CLI operations."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )
