"""glycopaint tracking: bounded execution, detection engines and the recording pipeline."""

from glycopaint.tracking.base_engine import (
    BaseDetectionEngine,
    DetectionParams,
    DetectionResult,
)
from glycopaint.tracking.invoker import ExperimentRunResult, run_experiment
from glycopaint.tracking.project import ProjectRunResult, run_project
from glycopaint.tracking.runner import BoundedTaskRunner, CancellationToken, run_bounded

__all__ = [
    "BaseDetectionEngine",
    "BoundedTaskRunner",
    "CancellationToken",
    "DetectionParams",
    "DetectionResult",
    "ExperimentRunResult",
    "ProjectRunResult",
    "run_bounded",
    "run_experiment",
    "run_project",
]
