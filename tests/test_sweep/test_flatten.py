"""Tests for flattening sweep results."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from glycopaint.core.config import TRACKMATE
from glycopaint.core.exceptions import PaintError
from glycopaint.core.schema import (
    CASE_COLUMN,
    EXPERIMENT_INFO_CSV,
    RECORDINGS_CSV,
    SQUARES_CSV,
    SWEEP_DIR,
    TRACKS_CSV,
)
from glycopaint.sweep.flatten import case_directories, flatten_case, flatten_sweep
from glycopaint.sweep.orchestrator import run_sweep
from glycopaint.sweep.specification import SweepParameter, SweepSpecification

SPEC = SweepSpecification((SweepParameter("RADIUS", True, (0.4, 0.6)),), TRACKMATE)


@pytest.fixture
def swept_project(project, images_root, experiment_names, fake_engine, fast_runner) -> Path:
    """Project with a completed, unflattened RADIUS sweep."""
    summary = run_sweep(
        project, images_root, experiment_names, fake_engine(),
        spec=SPEC, runner=fast_runner, flatten=False,
    )
    assert summary.succeeded
    return project


class TestCaseDirectories:
    def test_only_bracketed(self, tmp_path: Path) -> None:
        (tmp_path / "[RADIUS]-[0.4]").mkdir()
        (tmp_path / "other").mkdir()
        (tmp_path / "[file].csv").write_text("")
        assert [d.name for d in case_directories(tmp_path)] == ["[RADIUS]-[0.4]"]

    def test_missing_root(self, tmp_path: Path) -> None:
        assert case_directories(tmp_path / "none") == []


class TestFlattenCase:
    def test_tags_and_removes_experiments(self, swept_project: Path, experiment_names: list[str]) -> None:
        case_dir = swept_project / SWEEP_DIR / "[RADIUS]-[0.4]"
        flatten_case(case_dir, experiment_names)
        squares = pd.read_csv(case_dir / SQUARES_CSV)
        assert len(squares) == 1600
        assert set(squares[CASE_COLUMN]) == {"[RADIUS]-[0.4]"}
        for name in experiment_names:
            assert not (case_dir / name).exists()

    def test_keep_subdirs(self, swept_project: Path, experiment_names: list[str]) -> None:
        case_dir = swept_project / SWEEP_DIR / "[RADIUS]-[0.6]"
        flatten_case(case_dir, experiment_names, delete_subdirs=False)
        tracks = pd.read_csv(case_dir / experiment_names[0] / TRACKS_CSV)
        assert set(tracks[CASE_COLUMN]) == {"[RADIUS]-[0.6]"}

    def test_missing_tables_raise(self, tmp_path: Path, experiment_names: list[str]) -> None:
        case_dir = tmp_path / "[RADIUS]-[0.4]"
        for name in experiment_names:
            (case_dir / name).mkdir(parents=True)
        with pytest.raises(PaintError):
            flatten_case(case_dir, experiment_names)


class TestFlattenSweep:
    def test_cases_combined(self, swept_project: Path, experiment_names: list[str]) -> None:
        sweep_root = swept_project / SWEEP_DIR
        flattened = flatten_sweep(sweep_root, experiment_names)
        assert flattened == ["[RADIUS]-[0.4]", "[RADIUS]-[0.6]"]

        recordings = pd.read_csv(sweep_root / RECORDINGS_CSV)
        assert len(recordings) == 12
        assert recordings[CASE_COLUMN].value_counts().to_dict() == {
            "[RADIUS]-[0.4]": 6, "[RADIUS]-[0.6]": 6,
        }
        assert len(pd.read_csv(sweep_root / SQUARES_CSV)) == 3200
        assert len(pd.read_csv(sweep_root / TRACKS_CSV)) == 240
        assert len(pd.read_csv(sweep_root / EXPERIMENT_INFO_CSV)) == 12

    def test_failing_case_left_out(self, swept_project: Path, experiment_names: list[str]) -> None:
        sweep_root = swept_project / SWEEP_DIR
        (sweep_root / "[RADIUS]-[0.6]" / experiment_names[0] / TRACKS_CSV).unlink()
        flattened = flatten_sweep(sweep_root, experiment_names)
        assert flattened == ["[RADIUS]-[0.4]"]
        assert len(pd.read_csv(sweep_root / RECORDINGS_CSV)) == 6

    def test_run_sweep_flattens_on_success(
        self, project, images_root, experiment_names, fake_engine, fast_runner,
    ) -> None:
        summary = run_sweep(
            project, images_root, experiment_names, fake_engine(),
            spec=SPEC, runner=fast_runner,
        )
        assert summary.flattened == ["[RADIUS]-[0.4]", "[RADIUS]-[0.6]"]
        assert (project / SWEEP_DIR / SQUARES_CSV).exists()

    def test_only_listed_cases(self, swept_project: Path, experiment_names: list[str]) -> None:
        sweep_root = swept_project / SWEEP_DIR
        flattened = flatten_sweep(sweep_root, experiment_names, cases=[sweep_root / "[RADIUS]-[0.6]"])
        assert flattened == ["[RADIUS]-[0.6]"]
        assert (sweep_root / "[RADIUS]-[0.4]" / experiment_names[0]).is_dir()
        assert set(pd.read_csv(sweep_root / SQUARES_CSV)[CASE_COLUMN]) == {"[RADIUS]-[0.6]"}

    def test_earlier_sweep_cases_not_merged(
        self, swept_project: Path, images_root, experiment_names, fake_engine, fast_runner,
    ) -> None:
        spec = SweepSpecification((SweepParameter("MAX_FRAME_GAP", True, (1,)),), TRACKMATE)
        summary = run_sweep(
            swept_project, images_root, experiment_names, fake_engine(),
            spec=spec, runner=fast_runner,
        )
        sweep_root = swept_project / SWEEP_DIR
        assert summary.flattened == ["[MAX_FRAME_GAP]-[1]"]
        for file_name in (SQUARES_CSV, RECORDINGS_CSV, TRACKS_CSV):
            assert set(pd.read_csv(sweep_root / file_name)[CASE_COLUMN]) == {"[MAX_FRAME_GAP]-[1]"}
        # Cases of the earlier sweep are left untouched.
        assert (sweep_root / "[RADIUS]-[0.4]" / experiment_names[0]).is_dir()
        assert not (sweep_root / "[RADIUS]-[0.4]" / SQUARES_CSV).exists()
