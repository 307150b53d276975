"""glycopaint concat: combine an experiment table across experiments."""

from __future__ import annotations

from pathlib import Path

import click

from glycopaint.cli.utils import apply_project_log_level, console, error_handler, resolve_experiments
from glycopaint.core.schema import PROJECT_LEVEL_FILES


@click.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.option(
    "-f", "--file", "file_names", multiple=True,
    type=click.Choice(PROJECT_LEVEL_FILES),
    help="Table to combine (repeatable). All project tables if omitted.",
)
@click.option(
    "-e", "--experiment", "experiments", multiple=True,
    help="Experiment to include (repeatable). All experiments if omitted.",
)
@click.option("--case", default=None, help="Also tag every row with this Case label.")
@error_handler
def concat(
    project: str,
    file_names: tuple[str, ...],
    experiments: tuple[str, ...],
    case: str | None,
) -> None:
    """Concatenate experiment tables into project-level tables."""
    from glycopaint.io.concatenate import add_case, concatenate_named_csv_files

    project_path = Path(project)
    apply_project_log_level(project_path)
    names = resolve_experiments(project_path, experiments)
    for file_name in file_names or PROJECT_LEVEL_FILES:
        if case is not None:
            add_case(project_path, file_name, names, case)
        rows = concatenate_named_csv_files(project_path, file_name, names)
        console.print(f"{file_name}: {rows} rows from {len(names)} experiments")
