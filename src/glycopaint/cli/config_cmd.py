"""glycopaint config: inspect and edit a project's configuration."""

from __future__ import annotations

from pathlib import Path

import click
from rich.table import Table

from glycopaint.cli.utils import console, error_handler


@click.group()
def config() -> None:
    """Inspect and edit the project configuration."""


@config.command("show")
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.option("--section", default=None, help="Only show this section.")
@error_handler
def config_show(project: str, section: str | None) -> None:
    """Show configuration values."""
    from glycopaint.core.config import PaintConfig

    cfg = PaintConfig.for_project(Path(project))
    data = cfg.to_dict()
    table = Table(show_header=True)
    table.add_column("Section", style="bold")
    table.add_column("Key")
    table.add_column("Value")
    for name, body in data.items():
        if section is not None and name.lower() != section.lower():
            continue
        for key, value in body.items():
            table.add_row(name, key, repr(value))
    console.print(table)


@config.command("set")
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.argument("section")
@click.argument("key")
@click.argument("value")
@error_handler
def config_set(project: str, section: str, key: str, value: str) -> None:
    """Set SECTION/KEY to VALUE (numbers and true/false are typed)."""
    from glycopaint.core.config import PaintConfig, coerce_scalar

    cfg = PaintConfig.for_project(Path(project))
    lowered = value.strip().lower()
    typed = lowered == "true" if lowered in ("true", "false") else coerce_scalar(value)
    cfg.set(section, key, typed)
    cfg.save()
    console.print(f"{section}/{key} = {typed!r}")
