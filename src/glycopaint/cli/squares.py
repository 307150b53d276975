"""glycopaint squares: divide tracked recordings into squares."""

from __future__ import annotations

from pathlib import Path

import click

from glycopaint.cli.utils import (
    apply_project_log_level,
    console,
    error_handler,
    make_progress,
    resolve_experiments,
)


@click.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.option(
    "-e", "--experiment", "experiments", multiple=True,
    help="Experiment to process (repeatable). All experiments if omitted.",
)
@error_handler
def squares(project: str, experiments: tuple[str, ...]) -> None:
    """Generate squares and square statistics for tracked experiments."""
    from glycopaint.squares.generate import generate_squares

    project_path = Path(project)
    apply_project_log_level(project_path)
    names = resolve_experiments(project_path, experiments)

    with make_progress() as progress:
        task = progress.add_task("Generating squares...", total=len(names))

        def on_progress(current: int, total: int, name: str) -> None:
            progress.update(task, completed=current, description=f"Squares {name}")

        result = generate_squares(project_path, names, progress_callback=on_progress)

    console.print(
        f"[green]{result.squares_written} squares for "
        f"{result.recordings_processed} recordings in "
        f"{result.experiments_processed} experiments "
        f"({result.elapsed_seconds:.1f}s).[/green]"
    )
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    if not result.succeeded:
        raise SystemExit(1)
