"""PaintConfig: the JSON configuration document of a glycopaint project.

The document is a two-level mapping ``section -> key -> value``. Lookups are
case-insensitive on both levels. Typed getters never raise for missing or
invalid values: the supplied default is substituted, written back into the
document (and to disk when the handle is file-backed) and a warning is
logged.

The handle is passed explicitly to whatever needs it. Code that temporarily
changes values uses :meth:`PaintConfig.checkpoint` or
:meth:`PaintConfig.override`, which restore the previous state on every exit
path.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from glycopaint.core.exceptions import PaintError
from glycopaint.core.schema import CONFIG_FILE

logger = logging.getLogger(__name__)

TRACKMATE = "TrackMate"
GENERATE_SQUARES = "Generate Squares"
PAINT = "Paint"

DEFAULTS: dict[str, dict[str, Any]] = {
    GENERATE_SQUARES: {
        "Min Tracks to Calculate Tau": 20,
        "Min Required R Squared": 0.1,
        "Min Required Density Ratio": 2.0,
        "Max Allowable Variability": 10.0,
        "Neighbour Mode": "Free",
        "Number of Squares in Recording": 400,
        "Fraction of Squares to Determine Background": 0.1,
        "Min Track Duration": 0,
        "Max Track Duration": 2000000,
    },
    PAINT: {
        "Image File Extension": ".tif",
        "Log Level": "INFO",
    },
    TRACKMATE: {
        "MAX_FRAME_GAP": 3,
        "ALTERNATIVE_LINKING_COST_FACTOR": 1.05,
        "DO_SUBPIXEL_LOCALIZATION": False,
        "MIN_NR_SPOTS_IN_TRACK": 3,
        "LINKING_MAX_DISTANCE": 0.6,
        "MAX_NR_SPOTS_IN_IMAGE": 2000000,
        "GAP_CLOSING_MAX_DISTANCE": 1.2,
        "TARGET_CHANNEL": 1,
        "SPLITTING_MAX_DISTANCE": 15.0,
        "TRACK_COLOURING": "TRACK_DURATION",
        "RADIUS": 0.5,
        "ALLOW_GAP_CLOSING": True,
        "DO_MEDIAN_FILTERING": False,
        "ALLOW_TRACK_SPLITTING": False,
        "ALLOW_TRACK_MERGING": False,
        "MERGING_MAX_DISTANCE": 15.0,
        "Max Seconds Per Recording": 2000,
    },
}

_MISSING = object()


def coerce_scalar(value: Any) -> Any:
    """Return ``value`` as int if possible, else float, else unchanged.

    Booleans and non-string numbers pass through. Strings are tried as an
    integer first, then as a float; anything else is returned as the
    original string.
    """
    if isinstance(value, (bool, int, float)) or value is None:
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return value


def _match_key(mapping: dict[str, Any], key: str) -> str | None:
    """Find the key in ``mapping`` equal to ``key`` ignoring case."""
    if key in mapping:
        return key
    lowered = key.lower()
    for candidate in mapping:
        if candidate.lower() == lowered:
            return candidate
    return None


class PaintConfig:
    """Handle on one configuration document.

    Args:
        data: Initial document. None starts from a copy of ``DEFAULTS``.
        path: File backing the document. None keeps it in memory only.
        autosave: Write the document back when a default is substituted.
    """

    def __init__(
        self,
        data: dict[str, dict[str, Any]] | None = None,
        path: Path | None = None,
        autosave: bool = True,
    ) -> None:
        self._data: dict[str, dict[str, Any]] = (
            copy.deepcopy(DEFAULTS) if data is None else data
        )
        self.path = Path(path) if path is not None else None
        self.autosave = autosave

    # --- Construction / persistence ---------------------------------------

    @classmethod
    def load(cls, path: Path, create: bool = True) -> PaintConfig:
        """Open the document at ``path``.

        Args:
            path: JSON file to open.
            create: Write a default document when the file does not exist.

        Raises:
            PaintError: If the file exists but is not a JSON object, or is
                missing and ``create`` is False.
        """
        path = Path(path)
        if not path.exists():
            if not create:
                raise PaintError(f"Configuration file not found: {path}")
            logger.warning("No configuration at %s, writing defaults", path)
            config = cls(path=path)
            config.save()
            return config
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as exc:
            raise PaintError(f"Cannot read configuration {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PaintError(f"Configuration {path} must be a JSON object")
        sections = {
            name: dict(body) for name, body in data.items() if isinstance(body, dict)
        }
        return cls(sections, path=path)

    @classmethod
    def for_project(cls, project_root: Path) -> PaintConfig:
        """Open (or create) the configuration document of a project."""
        return cls.load(Path(project_root) / CONFIG_FILE)

    def save(self, path: Path | None = None) -> Path:
        """Atomically write the document as JSON.

        Args:
            path: Destination. None uses the handle's own path.

        Returns:
            The path written.

        Raises:
            PaintError: If neither ``path`` nor the handle's path is set.
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise PaintError("Configuration has no file to save to")
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(self._data, f, indent=4)
            os.replace(tmp, target)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
        return target

    def copy(self, path: Path | None = None) -> PaintConfig:
        """Return an independent handle on a deep copy of the document."""
        return PaintConfig(copy.deepcopy(self._data), path=path, autosave=self.autosave)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._data)

    def sections(self) -> list[str]:
        return list(self._data)

    # --- Raw access ---------------------------------------------------------

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Look up a raw value without substitution."""
        body = self._section(section)
        if body is None:
            return default
        actual = _match_key(body, key)
        return default if actual is None else body[actual]

    def has(self, section: str, key: str) -> bool:
        return self.get(section, key, _MISSING) is not _MISSING

    def set(self, section: str, key: str, value: Any) -> None:
        """Set a value, reusing the existing spelling of section and key."""
        body = self._section(section)
        if body is None:
            body = self._data.setdefault(section, {})
        actual = _match_key(body, key) or key
        body[actual] = value

    def remove(self, section: str, key: str) -> None:
        body = self._section(section)
        if body is None:
            return
        actual = _match_key(body, key)
        if actual is not None:
            del body[actual]

    def _section(self, section: str) -> dict[str, Any] | None:
        actual = _match_key(self._data, section)
        return None if actual is None else self._data[actual]

    # --- Typed getters -------------------------------------------------------

    def get_int(self, section: str, key: str, default: int) -> int:
        value = self.get(section, key, _MISSING)
        if isinstance(value, bool):
            return self._substitute(section, key, default, value)
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        return self._substitute(section, key, default, value)

    def get_float(self, section: str, key: str, default: float) -> float:
        value = self.get(section, key, _MISSING)
        if isinstance(value, bool):
            return self._substitute(section, key, default, value)
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                pass
        return self._substitute(section, key, default, value)

    def get_bool(self, section: str, key: str, default: bool) -> bool:
        value = self.get(section, key, _MISSING)
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        return self._substitute(section, key, default, value)

    def get_string(self, section: str, key: str, default: str) -> str:
        value = self.get(section, key, _MISSING)
        if isinstance(value, str) and value.strip():
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return self._substitute(section, key, default, value)

    def _substitute(self, section: str, key: str, default: Any, found: Any) -> Any:
        if found is _MISSING:
            logger.warning(
                "Config %s/%s missing, using default %r", section, key, default,
            )
        else:
            logger.warning(
                "Config %s/%s has invalid value %r, using default %r",
                section, key, found, default,
            )
        self.set(section, key, default)
        if self.autosave and self.path is not None:
            try:
                self.save()
            except OSError as exc:
                logger.warning("Failed to persist default for %s/%s: %s", section, key, exc)
        return default

    # --- Scoped mutation -----------------------------------------------------

    @contextmanager
    def checkpoint(self) -> Iterator[PaintConfig]:
        """Restore the whole document to its current state on exit.

        When the handle is file-backed the restored document is also
        written back, so the file ends up as it was on entry.
        """
        snapshot = copy.deepcopy(self._data)
        try:
            yield self
        finally:
            self._data = snapshot
            if self.path is not None:
                self.save()

    @contextmanager
    def override(self, section: str, key: str, value: Any) -> Iterator[Any]:
        """Temporarily set ``section/key`` to ``value``.

        On exit the original value is put back via :func:`coerce_scalar`;
        a key that did not exist before is removed again.

        Yields:
            The value that was in place before the override (or None).
        """
        original = self.get(section, key, _MISSING)
        self.set(section, key, value)
        try:
            yield None if original is _MISSING else original
        finally:
            if original is _MISSING:
                self.remove(section, key)
            else:
                self.set(section, key, coerce_scalar(original))


@dataclass(frozen=True)
class GenerateSquaresConfig:
    """Typed view of the ``Generate Squares`` section."""

    min_tracks_for_tau: int = 20
    min_required_r_squared: float = 0.1
    min_required_density_ratio: float = 2.0
    max_allowable_variability: float = 10.0
    neighbour_mode: str = "Free"
    number_of_squares_in_recording: int = 400
    fraction_of_squares_for_background: float = 0.1
    min_track_duration: float = 0.0
    max_track_duration: float = 2000000.0

    @classmethod
    def from_config(cls, config: PaintConfig) -> GenerateSquaresConfig:
        d = DEFAULTS[GENERATE_SQUARES]
        s = GENERATE_SQUARES
        return cls(
            min_tracks_for_tau=config.get_int(s, "Min Tracks to Calculate Tau", d["Min Tracks to Calculate Tau"]),
            min_required_r_squared=config.get_float(s, "Min Required R Squared", d["Min Required R Squared"]),
            min_required_density_ratio=config.get_float(s, "Min Required Density Ratio", d["Min Required Density Ratio"]),
            max_allowable_variability=config.get_float(s, "Max Allowable Variability", d["Max Allowable Variability"]),
            neighbour_mode=config.get_string(s, "Neighbour Mode", d["Neighbour Mode"]),
            number_of_squares_in_recording=config.get_int(s, "Number of Squares in Recording", d["Number of Squares in Recording"]),
            fraction_of_squares_for_background=config.get_float(
                s, "Fraction of Squares to Determine Background",
                d["Fraction of Squares to Determine Background"],
            ),
            min_track_duration=config.get_float(s, "Min Track Duration", d["Min Track Duration"]),
            max_track_duration=config.get_float(s, "Max Track Duration", d["Max Track Duration"]),
        )
