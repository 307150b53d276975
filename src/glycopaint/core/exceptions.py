"""Exception classes for the glycopaint core module."""


class PaintError(Exception):
    """Base exception for all glycopaint errors."""


class ProjectNotFoundError(PaintError):
    """Raised when a project root directory does not exist."""

    def __init__(self, path: str | None = None) -> None:
        msg = f"Project not found: {path}" if path else "Project not found"
        super().__init__(msg)
        self.path = path


class ExperimentNotFoundError(PaintError):
    """Raised when an experiment directory or its metadata table is missing."""

    def __init__(self, name: str | None = None, reason: str | None = None) -> None:
        msg = f"Experiment not found: {name}" if name else "Experiment not found"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
        self.name = name
        self.reason = reason


class SchemaError(PaintError):
    """Raised when a table does not carry the columns it must have."""

    def __init__(self, path: str | None = None, missing: list[str] | None = None) -> None:
        missing = missing or []
        msg = f"Invalid table: {path}" if path else "Invalid table"
        if missing:
            msg = f"{msg}; missing columns: {', '.join(missing)}"
        super().__init__(msg)
        self.path = path
        self.missing = missing


class ConcatenationError(PaintError):
    """Raised when an input to a concatenation is missing or unreadable."""

    def __init__(self, path: str | None = None, reason: str | None = None) -> None:
        msg = f"Cannot concatenate {path}" if path else "Concatenation failed"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.path = path
        self.reason = reason


class SweepConfigError(PaintError):
    """Raised when a sweep document is missing or malformed."""


class DetectionError(PaintError):
    """Raised by detection engines when a recording cannot be processed."""

    def __init__(self, recording: str | None = None, reason: str | None = None) -> None:
        msg = f"Detection failed for {recording}" if recording else "Detection failed"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.recording = recording
        self.reason = reason


class CancelledError(PaintError):
    """Raised inside cooperative work when its cancellation token is set."""

    def __init__(self, what: str | None = None) -> None:
        super().__init__(f"Cancelled: {what}" if what else "Cancelled")
        self.what = what
