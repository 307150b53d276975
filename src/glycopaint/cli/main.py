"""glycopaint CLI: top-level Click group."""

from __future__ import annotations

import logging

import click


@click.group()
@click.version_option(package_name="glycopaint")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging and full tracebacks on errors.")
def cli(verbose: bool) -> None:
    """glycopaint: single-particle tracking analysis."""
    from glycopaint.cli import utils

    utils.verbose = verbose
    utils.configure_logging(logging.DEBUG if verbose else logging.INFO)


def _register_commands() -> None:
    """Register all subcommands; imports deferred to avoid loading heavy deps at startup."""
    from glycopaint.cli.concat import concat
    from glycopaint.cli.config_cmd import config
    from glycopaint.cli.run import run
    from glycopaint.cli.squares import squares
    from glycopaint.cli.sweep import sweep

    cli.add_command(concat)
    cli.add_command(config)
    cli.add_command(run)
    cli.add_command(squares)
    cli.add_command(sweep)


_register_commands()
