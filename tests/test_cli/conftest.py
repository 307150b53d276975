"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import Callable

import pytest
from click.testing import CliRunner

from glycopaint.cli import utils


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def use_engine(monkeypatch) -> Callable[[object], None]:
    """Make ``--engine trackpy`` build the given engine instead."""

    def _use(engine: object) -> None:
        monkeypatch.setitem(utils.ENGINES, "trackpy", lambda: engine)

    return _use


@pytest.fixture(autouse=True)
def wide_console(monkeypatch) -> None:
    """Keep Rich from wrapping long paths in captured output."""
    monkeypatch.setattr(utils.console, "width", 200)
