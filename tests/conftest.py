"""Shared test fixtures for glycopaint."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pytest

from glycopaint.core.config import TRACKMATE, PaintConfig
from glycopaint.core.exceptions import CancelledError, DetectionError
from glycopaint.core.models import ExperimentInfo, Track
from glycopaint.core.schema import EXPERIMENT_INFO_CSV, NUMBER_OF_FRAMES, TIME_INTERVAL
from glycopaint.io.tables import write_experiment_info
from glycopaint.squares.grid import GridDescriptor
from glycopaint.tracking.base_engine import BaseDetectionEngine, DetectionParams, DetectionResult
from glycopaint.tracking.features import track_from_points
from glycopaint.tracking.runner import BoundedTaskRunner, CancellationToken

EXPERIMENTS = ("240101", "240102")

# Squares the synthetic tracks are placed in: (row, col) on a 20x20 grid.
TRACK_SQUARES = ((0, 0), (0, 1), (1, 0))


def synthetic_tracks(recording_name: str, count: int = 30) -> list[Track]:
    """Deterministic tracks spread over ``TRACK_SQUARES``."""
    grid = GridDescriptor()
    tracks = []
    for i in range(count):
        row, col = TRACK_SQUARES[i % len(TRACK_SQUARES)]
        cx = (col + 0.3) * grid.square_width
        cy = (row + 0.3) * grid.square_height
        n = 3 + (i * 7) % 25
        steps = np.arange(n)
        tracks.append(track_from_points(
            recording_name,
            i,
            steps,
            cx + 0.01 * steps,
            cy + 0.005 * steps,
            TIME_INTERVAL,
        ))
    return tracks


class FakeEngine(BaseDetectionEngine):
    """Detection engine returning synthetic tracks without reading images.

    Args:
        fail: Recording names that raise DetectionError.
        slow: Recording names that block until their token is cancelled.
        fail_calls: 1-based call numbers that raise DetectionError.
        on_detect: Called with the recording name at the start of every call.
        n_tracks: Tracks per recording.
    """

    name = "fake"

    def __init__(
        self,
        fail: tuple[str, ...] = (),
        slow: tuple[str, ...] = (),
        fail_calls: tuple[int, ...] = (),
        on_detect: Callable[[str], None] | None = None,
        n_tracks: int = 30,
    ) -> None:
        self.fail = set(fail)
        self.slow = set(slow)
        self.fail_calls = set(fail_calls)
        self.on_detect = on_detect
        self.n_tracks = n_tracks
        self.calls: list[tuple[str, DetectionParams]] = []

    def detect(
        self,
        image_path: Path,
        recording_name: str,
        params: DetectionParams,
        token: CancellationToken | None = None,
    ) -> DetectionResult:
        self.calls.append((recording_name, params))
        if self.on_detect is not None:
            self.on_detect(recording_name)
        if recording_name in self.slow:
            if token is not None:
                token.wait(30)
            raise CancelledError(recording_name)
        if recording_name in self.fail or len(self.calls) in self.fail_calls:
            raise DetectionError(recording_name, "synthetic failure")
        tracks = synthetic_tracks(recording_name, self.n_tracks)
        spots = sum(t.number_of_spots for t in tracks)
        return DetectionResult(
            number_of_spots=spots,
            number_of_tracks=len(tracks),
            number_of_raw_tracks=len(tracks),
            number_of_frames=NUMBER_OF_FRAMES,
            number_of_spots_in_all_tracks=spots,
            tracks=tracks,
            duration_seconds=0.01,
        )


def write_experiment(root: Path, name: str, processed: int = 2, skipped: int = 1) -> Path:
    """Create an experiment directory with its metadata table."""
    exp = root / name
    exp.mkdir(parents=True, exist_ok=True)
    infos = [
        ExperimentInfo(
            recording_name=f"{name}-{i + 1}",
            condition_number=1,
            replicate_number=i + 1,
            probe_name="1 Mono",
            probe_type="Simple",
            cell_type="BMDC",
            adjuvant="None",
            concentration=10.0,
            process=i < processed,
            threshold=5.0,
        )
        for i in range(processed + skipped)
    ]
    write_experiment_info(infos, exp / EXPERIMENT_INFO_CSV)
    return exp


@pytest.fixture
def fake_engine() -> Callable[..., FakeEngine]:
    """Factory for FakeEngine instances."""
    return FakeEngine


@pytest.fixture
def fast_runner() -> BoundedTaskRunner:
    """Bounded runner with a short poll interval."""
    return BoundedTaskRunner(poll_interval=0.02)


@pytest.fixture
def images_root(tmp_path: Path) -> Path:
    """Image directories with an empty stack for every recording of ``project``."""
    path = tmp_path / "images"
    for name in EXPERIMENTS:
        (path / name).mkdir(parents=True)
        for i in range(3):
            (path / name / f"{name}-{i + 1}.tif").touch()
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project with two experiments of two processed and one skipped recording."""
    root = tmp_path / "project"
    root.mkdir()
    for name in EXPERIMENTS:
        write_experiment(root, name)
    config = PaintConfig.for_project(root)
    config.set(TRACKMATE, "Threshold", 3)
    config.save()
    return root


@pytest.fixture
def project_config(project: Path) -> PaintConfig:
    return PaintConfig.for_project(project)


@pytest.fixture
def tracked_project(
    project: Path,
    images_root: Path,
    fast_runner: BoundedTaskRunner,
) -> Path:
    """Project after a successful pipeline run with FakeEngine."""
    from glycopaint.tracking.project import run_project

    result = run_project(project, images_root, EXPERIMENTS, FakeEngine(), runner=fast_runner)
    assert result.succeeded
    return project


@pytest.fixture
def experiment_names() -> list[str]:
    return list(EXPERIMENTS)
