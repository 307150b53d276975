"""Sweep specification: which parameters to vary and over which values.

The document (``Sweep Configuration.json``) has one section mapping each
parameter name to an enabled flag, plus one section per parameter mapping
labels (``"Value 0"``, ``"Value 1"``, ...) to numbers::

    {
        "TrackMate Sweep": {"RADIUS": true, "MAX_FRAME_GAP": false},
        "RADIUS": {"Value 0": 0.4, "Value 1": 0.5, "Value 2": 0.6}
    }

JSON files are read with ``json``; any other file with ``yaml.safe_load``,
so the same structure may be written in YAML.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from glycopaint.core.config import TRACKMATE, coerce_scalar
from glycopaint.core.exceptions import SweepConfigError

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_SECTION = "TrackMate Sweep"


def _as_number(value: Any) -> int | float | None:
    """Number for a sweep value; integral values become int."""
    if isinstance(value, bool):
        return None
    value = coerce_scalar(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    return None


def _as_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    if isinstance(value, (int, float)):
        return value != 0
    return False


@dataclass(frozen=True)
class SweepParameter:
    """One parameter of a sweep and its candidate values, in document order."""

    name: str
    enabled: bool
    values: tuple[int | float, ...] = ()


@dataclass(frozen=True)
class SweepSpecification:
    """Parameters of a one-factor-at-a-time sweep.

    Attributes:
        parameters: All parameters named in the sweep section.
        target_section: Configuration section the parameters belong to.
    """

    parameters: tuple[SweepParameter, ...] = ()
    target_section: str = TRACKMATE
    source: Path | None = field(default=None, compare=False)

    def active(self) -> list[SweepParameter]:
        """Enabled parameters that have at least one value."""
        return [p for p in self.parameters if p.enabled and p.values]

    def get(self, name: str) -> SweepParameter | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        section: str = DEFAULT_SWEEP_SECTION,
        target_section: str = TRACKMATE,
    ) -> SweepSpecification:
        """Build from a parsed document.

        Raises:
            SweepConfigError: If the document or its sweep section is not a
                mapping.
        """
        if not isinstance(data, dict):
            raise SweepConfigError("Sweep document must be a mapping")
        flags = data.get(section)
        if flags is None:
            raise SweepConfigError(f"Sweep document has no section {section!r}")
        if not isinstance(flags, dict):
            raise SweepConfigError(f"Section {section!r} must be a mapping")

        parameters = []
        for name, flag in flags.items():
            enabled = _as_flag(flag)
            values: list[int | float] = []
            if enabled:
                raw_values = data.get(name)
                if not isinstance(raw_values, dict):
                    logger.warning("Sweep parameter %s is enabled but has no values", name)
                else:
                    for label, raw in raw_values.items():
                        number = _as_number(raw)
                        if number is None:
                            logger.warning(
                                "Ignoring non-numeric sweep value %s/%s: %r", name, label, raw,
                            )
                            continue
                        values.append(number)
            parameters.append(SweepParameter(str(name), enabled, tuple(values)))
        return cls(tuple(parameters), target_section)


def load_sweep_specification(
    path: Path,
    section: str = DEFAULT_SWEEP_SECTION,
    target_section: str = TRACKMATE,
) -> SweepSpecification:
    """Read a sweep document from ``path``.

    Raises:
        SweepConfigError: If the file is missing, unparsable or malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise SweepConfigError(f"Sweep configuration not found: {path}")
    text = path.read_text()
    try:
        data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SweepConfigError(f"Cannot parse sweep configuration {path}: {exc}") from exc
    spec = SweepSpecification.from_dict(data or {}, section, target_section)
    return SweepSpecification(spec.parameters, spec.target_section, source=path)
