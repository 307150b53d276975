"""glycopaint fitting: Tau curve fitting."""

from glycopaint.fitting.tau import TauResult, TauStatus, fit_decay, fit_tau

__all__ = ["TauResult", "TauStatus", "fit_decay", "fit_tau"]
