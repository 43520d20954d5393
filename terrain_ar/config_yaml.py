"""YAML loading for :class:`terrain_ar.config.AppConfig`.

Conventions:
    - The YAML root is a mapping whose keys are AppConfig sections
      (``orientation``, ``calibration``, ``location``, ``motion``, ``terrain``).
    - Each section maps field names of the matching dataclass; missing
      sections and fields keep their defaults.
    - Unknown keys raise, so a misspelled option never silently falls back.
    - Sequences are converted to tuples to match the frozen dataclasses.

Depends on PyYAML (``pyyaml``).
"""

from __future__ import annotations

import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from terrain_ar.config import (
    AppConfig,
    CalibrationConfig,
    LocationConfig,
    MotionConfig,
    OrientationConfig,
    TerrainConfig,
)

logger = logging.getLogger(__name__)

_SECTIONS = {
    "orientation": OrientationConfig,
    "calibration": CalibrationConfig,
    "location": LocationConfig,
    "motion": MotionConfig,
    "terrain": TerrainConfig,
}


def _as_mapping(x: Any, where: str) -> Mapping[str, Any]:
    if x is None:
        return {}
    if isinstance(x, Mapping):
        return x
    raise TypeError(f"{where} must be a mapping, got {type(x).__name__}")


def _section_from_dict(name: str, cls: type, data: Mapping[str, Any]) -> Any:
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(data.keys()) - allowed)
    if unknown:
        raise KeyError(f"unknown {name} option(s): {unknown}")

    kwargs = {k: tuple(v) if isinstance(v, list) else v for k, v in data.items()}
    try:
        return cls(**kwargs)
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid {name} configuration: {e}") from e


def app_config_from_dict(data: Mapping[str, Any]) -> AppConfig:
    """Build an AppConfig from a dict (usually parsed YAML)."""

    unknown = sorted(set(data.keys()) - set(_SECTIONS))
    if unknown:
        raise KeyError(f"unknown configuration section(s): {unknown}")

    sections = {
        name: _section_from_dict(name, cls, _as_mapping(data.get(name), name))
        for name, cls in _SECTIONS.items()
    }
    return AppConfig(**sections)


def load_app_config_yaml(path: str | Path) -> AppConfig:
    """Load an AppConfig from a YAML file."""

    p = Path(path)
    payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    config = app_config_from_dict(_as_mapping(payload, "YAML root"))
    logger.debug("Loaded configuration from %s", p)
    return config
