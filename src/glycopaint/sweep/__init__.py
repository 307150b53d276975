"""glycopaint sweep: one-factor-at-a-time parameter sweeps."""

from glycopaint.sweep.flatten import flatten_sweep
from glycopaint.sweep.orchestrator import SweepCase, SweepSummary, case_label, run_sweep
from glycopaint.sweep.specification import (
    SweepParameter,
    SweepSpecification,
    load_sweep_specification,
)

__all__ = [
    "SweepCase",
    "SweepParameter",
    "SweepSpecification",
    "SweepSummary",
    "case_label",
    "flatten_sweep",
    "load_sweep_specification",
    "run_sweep",
]
