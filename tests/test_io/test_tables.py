"""Tests for reading and writing glycopaint tables."""

from __future__ import annotations

import math
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from glycopaint.core.exceptions import ExperimentNotFoundError, SchemaError
from glycopaint.core.models import ExperimentInfo, Recording, Track
from glycopaint.core.schema import (
    EXPERIMENT_INFO_CSV,
    RECORDING_COLS,
    TRACK_COLS,
)
from glycopaint.io.tables import (
    format_cell,
    read_experiment_info,
    read_recordings,
    read_table,
    read_tracks,
    write_experiment_info,
    write_recordings,
    write_table,
    write_tracks,
)


class TestFormatCell:
    def test_missing_values(self) -> None:
        assert format_cell("Tau", None) == ""
        assert format_cell("Tau", math.nan) == ""

    def test_bool(self) -> None:
        assert format_cell("Selected", True) == "True"
        assert format_cell("Selected", np.bool_(False)) == "False"

    def test_float_three_decimals(self) -> None:
        assert format_cell("Density", 1.23456) == "1.235"

    def test_integer_column_without_decimals(self) -> None:
        assert format_cell("Square Number", 12.0) == "12"
        assert format_cell("Number of Spots", np.int64(4)) == "4"

    def test_text(self) -> None:
        assert format_cell("Recording Name", "r1") == "r1"


class TestReadWriteTable:
    def test_header_is_exact(self, tmp_path: Path) -> None:
        path = write_table([{"a": 1, "z": "dropped"}], tmp_path / "t.csv", ["a", "b"])
        frame = read_table(path)
        assert list(frame.columns) == ["a", "b"]
        assert frame.iloc[0]["a"] == "1"
        assert frame.iloc[0]["b"] == ""

    def test_empty_rows_write_header(self, tmp_path: Path) -> None:
        path = write_table([], tmp_path / "t.csv", ["a", "b"])
        assert path.read_text().strip() == "a,b"

    def test_missing_required_column(self, tmp_path: Path) -> None:
        path = write_table([{"a": 1}], tmp_path / "t.csv", ["a"])
        with pytest.raises(SchemaError, match="b"):
            read_table(path, ["a", "b"])

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_table(tmp_path / "nope.csv")


class TestExperimentInfoTable:
    def test_round_trip(self, tmp_path: Path) -> None:
        exp = tmp_path / "240101"
        exp.mkdir()
        infos = [ExperimentInfo("r1", threshold=5.0), ExperimentInfo("r2", process=False)]
        write_experiment_info(infos, exp / EXPERIMENT_INFO_CSV)
        loaded = read_experiment_info(exp)
        assert [i.recording_name for i in loaded] == ["r1", "r2"]
        assert loaded[0].threshold == 5.0
        assert loaded[1].process is False

    def test_blank_names_skipped(self, tmp_path: Path) -> None:
        exp = tmp_path / "240101"
        exp.mkdir()
        write_experiment_info([ExperimentInfo("r1")], exp / EXPERIMENT_INFO_CSV)
        with (exp / EXPERIMENT_INFO_CSV).open("a") as f:
            f.write("," * 9 + "\n")
        assert len(read_experiment_info(exp)) == 1

    def test_missing_experiment(self, tmp_path: Path) -> None:
        with pytest.raises(ExperimentNotFoundError, match="does not exist"):
            read_experiment_info(tmp_path / "missing")

    def test_missing_table(self, tmp_path: Path) -> None:
        (tmp_path / "240101").mkdir()
        with pytest.raises(ExperimentNotFoundError, match=EXPERIMENT_INFO_CSV):
            read_experiment_info(tmp_path / "240101")


class TestRecordingAndTrackTables:
    def test_recordings_round_trip(self, tmp_path: Path) -> None:
        rec = Recording(info=ExperimentInfo("r1"), number_of_spots=10, tau=123.0)
        path = write_recordings([rec], tmp_path / "All Recordings.csv")
        assert tuple(pd.read_csv(path).columns) == RECORDING_COLS
        loaded = read_recordings(path, "240101")
        assert loaded[0].number_of_spots == 10
        assert loaded[0].tau == 123.0
        assert math.isnan(loaded[0].density)

    def test_tracks_numeric_columns(self, tmp_path: Path) -> None:
        tracks = [Track("r1", 0, 5, track_duration=0.2, x_location=1.5), Track("r1", 1, 3)]
        path = write_tracks(tracks, tmp_path / "All Tracks.csv")
        frame = read_tracks(path)
        assert tuple(frame.columns) == TRACK_COLS
        assert frame["Track Duration"].tolist() == [0.2, 0.0]
        assert frame["Unique Key"].tolist() == ["r1-0", "r1-1"]
        assert frame["Square Number"].isna().all()

    def test_empty_tracks(self, tmp_path: Path) -> None:
        path = write_tracks([], tmp_path / "All Tracks.csv")
        frame = read_tracks(path)
        assert frame.empty
        assert tuple(frame.columns) == TRACK_COLS
