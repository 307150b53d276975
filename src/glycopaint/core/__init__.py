"""glycopaint core: schemas, models, configuration and exceptions."""

from glycopaint.core.config import GenerateSquaresConfig, PaintConfig
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
from glycopaint.core.models import (
    BackgroundEstimate,
    ExperimentInfo,
    Recording,
    Square,
    Track,
)

__all__ = [
    "PaintConfig",
    "GenerateSquaresConfig",
    "ExperimentInfo",
    "Recording",
    "Track",
    "Square",
    "BackgroundEstimate",
    "PaintError",
    "ProjectNotFoundError",
    "ExperimentNotFoundError",
    "SchemaError",
    "CancelledError",
    "ConcatenationError",
    "SweepConfigError",
    "DetectionError",
]
