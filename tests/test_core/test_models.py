"""Tests for glycopaint core data models."""

from __future__ import annotations

import math

import pytest

from glycopaint.core.models import (
    BackgroundEstimate,
    ExperimentInfo,
    Recording,
    Square,
    Track,
    parse_bool,
    parse_float,
    parse_int,
)
from glycopaint.core.schema import RECORDING_COLS, SQUARE_COLS, TRACK_COLS


def _info_row(**overrides: str) -> dict[str, str]:
    row = {
        "Recording Name": "240101-Exp-1-A1-1",
        "Condition Number": "1",
        "Replicate Number": "2",
        "Probe Name": "1 Mono",
        "Probe Type": "Simple",
        "Cell Type": "BMDC",
        "Adjuvant": "None",
        "Concentration": "10",
        "Process Flag": "Yes",
        "Threshold": "5",
    }
    row.update(overrides)
    return row


class TestParsing:
    @pytest.mark.parametrize("value", ["true", "Yes", "Y", "1", "T", True])
    def test_truthy(self, value) -> None:
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "no", "", None, float("nan"), False])
    def test_falsy(self, value) -> None:
        assert parse_bool(value) is False

    def test_parse_float_default(self) -> None:
        assert math.isnan(parse_float(""))
        assert parse_float("x", default=1.0) == 1.0

    def test_parse_int_accepts_float_text(self) -> None:
        assert parse_int("3.0") == 3
        assert parse_int("", default=-1) == -1


class TestExperimentInfo:
    def test_from_row(self) -> None:
        info = ExperimentInfo.from_row(_info_row())
        assert info.recording_name == "240101-Exp-1-A1-1"
        assert info.replicate_number == 2
        assert info.concentration == 10.0
        assert info.process is True
        assert info.threshold == 5.0

    def test_to_row_keeps_original_text(self) -> None:
        info = ExperimentInfo.from_row(_info_row(Concentration="10.00"))
        assert info.to_row()["Concentration"] == "10.00"

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="recording_name"):
            ExperimentInfo(recording_name="")


class TestRecording:
    def test_defaults(self) -> None:
        rec = Recording(info=ExperimentInfo("r1"))
        assert rec.name == "r1"
        assert rec.number_of_spots == 0
        assert math.isnan(rec.tau)
        assert rec.number_of_tracks_in_background is None

    def test_row_has_full_schema(self) -> None:
        rec = Recording(info=ExperimentInfo.from_row(_info_row()))
        assert tuple(rec.to_row()) == RECORDING_COLS

    def test_from_row(self) -> None:
        row = _info_row()
        row.update({
            "Number of Spots": "120",
            "Number of Tracks": "30",
            "Number of Tracks in Background": "",
            "Tau": "250.000",
            "Exclude": "False",
        })
        rec = Recording.from_row(row, experiment_name="240101")
        assert rec.number_of_spots == 120
        assert rec.number_of_tracks == 30
        assert rec.number_of_tracks_in_background is None
        assert rec.tau == 250.0
        assert rec.exclude is False
        assert rec.experiment_name == "240101"


class TestTrackAndSquare:
    def test_track_keys(self) -> None:
        track = Track("r1", 7, number_of_spots=4)
        assert track.unique_key == "r1-7"
        assert track.label == "Track_7"
        assert tuple(track.to_row()) == TRACK_COLS

    def test_square_row(self) -> None:
        sq = Square("r1", 21, 1, 1, 4.1, 4.1, 8.21, 8.21)
        assert sq.unique_key == "r1-21"
        assert tuple(sq.to_row()) == SQUARE_COLS

    def test_squares_compare_by_identity(self) -> None:
        a = Square("r1", 0, 0, 0, 0, 0, 1, 1)
        b = Square("r1", 0, 0, 0, 0, 0, 1, 1)
        assert a != b
        assert len({a, b}) == 2

    def test_background_track_count(self) -> None:
        squares = [Square("r", i, 0, i, 0, 0, 1, 1, number_of_tracks=i) for i in range(4)]
        assert BackgroundEstimate(1.5, tuple(squares)).track_count == 6
