"""glycopaint sweep: run the pipeline once per swept parameter value."""

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
    help="Experiment to include (repeatable). All experiments if omitted.",
)
@click.option(
    "--sweep-file", type=click.Path(exists=True, dir_okay=False), default=None,
    help="Sweep document. Defaults to the project's Sweep Configuration.json.",
)
@click.option(
    "--engine", default="trackpy", show_default=True,
    type=click.Choice(sorted(ENGINES)),
    help="Detection engine.",
)
@click.option("--no-flatten", is_flag=True, help="Do not flatten the results.")
@click.option("--keep-subdirs", is_flag=True, help="Keep per-experiment directories when flattening.")
@error_handler
def sweep(
    project: str,
    images: str,
    experiments: tuple[str, ...],
    sweep_file: str | None,
    engine: str,
    no_flatten: bool,
    keep_subdirs: bool,
) -> None:
    """Sweep detection parameters one at a time."""
    from glycopaint.sweep.orchestrator import run_sweep
    from glycopaint.sweep.specification import load_sweep_specification

    project_path = Path(project)
    apply_project_log_level(project_path)
    names = resolve_experiments(project_path, experiments)
    spec = load_sweep_specification(Path(sweep_file)) if sweep_file else None

    def on_case(parameter: str, value: int | float, succeeded: bool) -> None:
        status = "[green]SUCCESS[/green]" if succeeded else "[red]FAILED[/red]"
        console.print(f"  {parameter} = {value}: {status}")

    summary = run_sweep(
        project_path, Path(images), names, make_engine(engine),
        spec=spec,
        flatten=not no_flatten,
        delete_subdirs=not keep_subdirs,
        progress_callback=on_case,
    )

    if not summary.cases:
        console.print("[yellow]No active sweep parameters.[/yellow]")
        return

    table = Table(show_header=True, title="Sweep")
    table.add_column("Parameter", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status")
    for case in summary.cases:
        table.add_row(case.parameter, str(case.value), "SUCCESS" if case.succeeded else "FAILED")
    console.print(table)
    console.print(f"Summary written to {summary.summary_path}")
    if summary.flattened:
        console.print(f"[green]Flattened {len(summary.flattened)} cases.[/green]")
    if not summary.succeeded:
        raise SystemExit(1)
