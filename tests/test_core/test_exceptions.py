"""Tests for glycopaint exception classes."""

from __future__ import annotations

import pytest

from glycopaint.core.exceptions import (
    CancelledError,
    ConcatenationError,
    DetectionError,
    ExperimentNotFoundError,
    PaintError,
    ProjectNotFoundError,
    SchemaError,
    SweepConfigError,
)


class TestExceptions:
    @pytest.mark.parametrize("cls", [
        CancelledError,
        ConcatenationError,
        DetectionError,
        ExperimentNotFoundError,
        ProjectNotFoundError,
        SchemaError,
        SweepConfigError,
    ])
    def test_all_derive_from_paint_error(self, cls) -> None:
        assert issubclass(cls, PaintError)

    def test_experiment_not_found_message(self) -> None:
        err = ExperimentNotFoundError("240101", "no Experiment Info.csv")
        assert str(err) == "Experiment not found: 240101 (no Experiment Info.csv)"
        assert err.name == "240101"

    def test_schema_error_lists_columns(self) -> None:
        err = SchemaError("t.csv", ["Tau", "Density"])
        assert "missing columns: Tau, Density" in str(err)
        assert err.missing == ["Tau", "Density"]

    def test_concatenation_error(self) -> None:
        err = ConcatenationError("a.csv", "input file does not exist")
        assert str(err) == "Cannot concatenate a.csv: input file does not exist"

    def test_cancelled_error(self) -> None:
        assert str(CancelledError()) == "Cancelled"
        assert str(CancelledError("rec-1")) == "Cancelled: rec-1"
