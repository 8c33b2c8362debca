# src/tripsequence/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/tripsequence/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `TRIPSEQUENCE_LOG_LEVEL`)
- an external YAML file via `TRIPSEQUENCE_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator

from tripsequence.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `tripsequence.config`."""
    text = resources.files("tripsequence.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "TripSequence"
    log_level: str = "INFO"


class ConfidenceThresholds(BaseModel):
    high_percent: float = Field(20.0, ge=0, le=100)
    medium_percent: float = Field(10.0, ge=0, le=100)

    @model_validator(mode="after")
    def _validate_order(self) -> "ConfidenceThresholds":
        if self.medium_percent > self.high_percent:
            raise ValueError("confidence.medium_percent must not exceed confidence.high_percent")
        return self


class RoutingSettings(BaseModel):
    walking_speed_kmh: float = Field(5.0, gt=0)
    driving_speed_kmh: float = Field(30.0, gt=0)
    use_two_opt: bool = True
    respect_time_blocks: bool = False
    max_two_opt_iterations: int = Field(100, ge=0)
    # Only reorder stops when 2-opt has more than this many to work with.
    two_opt_min_stops: int = Field(3, ge=0)
    backtrack_ratio: float = Field(1.5, gt=0)
    savings_optimal_factor: float = Field(0.7, gt=0)
    confidence: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)


class ClusteringSettings(BaseModel):
    threshold: int = Field(20, ge=0)
    radius: float = Field(60.0, gt=0)
    extent: int = Field(512, gt=0)
    min_zoom: int = Field(0, ge=0, le=24)
    max_zoom: int = Field(16, ge=0, le=24)
    min_points: int = Field(2, ge=1)

    @model_validator(mode="after")
    def _validate_zoom_range(self) -> "ClusteringSettings":
        if self.min_zoom > self.max_zoom:
            raise ValueError("clustering.min_zoom must not exceed clustering.max_zoom")
        return self


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    routing: RoutingSettings = Field(default_factory=RoutingSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("TRIPSEQUENCE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("TRIPSEQUENCE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
