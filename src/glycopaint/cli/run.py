"""glycopaint run: detect and link tracks in every recording of a project."""

from __future__ import annotations

from pathlib import Path

import click
from rich.table import Table

from glycopaint.cli.utils import (
    ENGINES,
    apply_project_log_level,
    console,
    error_handler,
    make_engine,
    make_progress,
    resolve_experiments,
)


@click.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.option(
    "-i", "--images", required=True, type=click.Path(exists=True, file_okay=False),
    help="Directory holding one image directory per experiment.",
)
@click.option(
    "-e", "--experiment", "experiments", multiple=True,
    help="Experiment to process (repeatable). All experiments if omitted.",
)
@click.option(
    "--engine", default="trackpy", show_default=True,
    type=click.Choice(sorted(ENGINES)),
    help="Detection engine.",
)
@click.option(
    "--squares/--no-squares", "with_squares", default=True, show_default=True,
    help="Generate squares after tracking.",
)
@error_handler
def run(
    project: str,
    images: str,
    experiments: tuple[str, ...],
    engine: str,
    with_squares: bool,
) -> None:
    """Run spot detection and tracking on a project."""
    from glycopaint.squares.generate import generate_squares
    from glycopaint.tracking.project import run_project

    project_path = Path(project)
    apply_project_log_level(project_path)
    names = resolve_experiments(project_path, experiments)
    detector = make_engine(engine)

    with make_progress() as progress:
        task = progress.add_task("Tracking...", total=None)

        def on_progress(current: int, total: int, recording: str) -> None:
            progress.update(
                task, total=total, completed=current,
                description=f"Tracking {recording}",
            )

        result = run_project(
            project_path, Path(images), names, detector,
            progress_callback=on_progress,
        )

    table = Table(show_header=True, title="Tracking")
    table.add_column("Experiment", style="bold")
    table.add_column("Processed", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Time (s)", justify="right")
    for exp in result.experiments:
        table.add_row(
            exp.experiment,
            str(exp.recordings_processed),
            str(exp.recordings_failed),
            str(exp.recordings_skipped),
            f"{exp.elapsed_seconds:.1f}",
        )
    console.print(table)
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    if not result.succeeded:
        console.print("[red]Tracking did not complete for all recordings.[/red]")
        raise SystemExit(1)

    if with_squares:
        squares_result = generate_squares(project_path, names)
        console.print(
            f"[green]Generated {squares_result.squares_written} squares "
            f"for {squares_result.recordings_processed} recordings.[/green]"
        )
        if not squares_result.succeeded:
            raise SystemExit(1)
