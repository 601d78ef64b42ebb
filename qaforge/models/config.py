"""Pipeline configuration schema.

Loaded once at startup from ``qaforge.toml``, ``pyproject.toml``
``[tool.qaforge]``, or a JSON file.  Unknown keys are rejected.
"""

from __future__ import annotations

import json
import tomllib
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from qaforge.models.results import Category

SCHEMA_VERSION = 1


class ConfigError(ValueError):
    """Raised when a pipeline configuration file is missing keys or invalid."""


class GateSpec(BaseModel):
    """One threshold check over a derived metric.

    ``critical_threshold`` is the floor (for ``ge``) or ceiling (for ``le``)
    past which a failure is critical rather than a warning.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    metric: Literal[
        "pass_rate", "average_duration_ms", "coverage_percent", "fail_rate", "quality_score"
    ]
    comparator: Literal["ge", "le"]
    threshold: float
    critical_threshold: float | None = None


DEFAULT_GATES: tuple[GateSpec, ...] = (
    GateSpec(name="passRate", metric="pass_rate", comparator="ge", threshold=95.0,
             critical_threshold=70.0),
    GateSpec(name="averageDuration", metric="average_duration_ms", comparator="le",
             threshold=2000.0),
    GateSpec(name="coverage", metric="coverage_percent", comparator="ge", threshold=80.0),
    GateSpec(name="stability", metric="fail_rate", comparator="le", threshold=0.0),
    GateSpec(name="qualityScore", metric="quality_score", comparator="ge", threshold=95.0,
             critical_threshold=70.0),
)

DEFAULT_SEVERITY_WEIGHTS: dict[str, float] = {
    "critical": 10.0,
    "serious": 7.0,
    "high": 7.0,
    "moderate": 4.0,
    "medium": 4.0,
    "minor": 1.0,
    "low": 1.0,
}

DEFAULT_QUALITY_WEIGHTS: dict[str, float] = {
    "ui": 0.25,
    "api": 0.25,
    "performance": 0.20,
    "accessibility": 0.15,
    "security": 0.15,
}


class ToolSpec(BaseModel):
    """An external test engine launched by ``qaforge run``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    command: list[str] = Field(min_length=1)
    timeout_seconds: float = 1800.0
    enabled: bool = True


class PipelineConfig(BaseModel):
    """Versioned configuration for the aggregation and reporting pipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_version: Literal[1] = SCHEMA_VERSION
    results_root: Path = Path("test-results")
    report_root: Path = Path("reports")
    history_path: Path | None = None  # defaults to <report_root>/metrics/historical-data.json
    history_max_len: int = Field(default=50, ge=1)
    history_lock_timeout_seconds: float = Field(default=10.0, gt=0)
    trend_window: int = Field(default=5, ge=1)
    severity_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_SEVERITY_WEIGHTS)
    )
    quality_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_QUALITY_WEIGHTS)
    )
    gates: list[GateSpec] = Field(default_factory=lambda: list(DEFAULT_GATES))
    counted_categories: list[Category] = Field(
        default_factory=lambda: [Category.UI, Category.API]
    )
    adapter_timeout_seconds: float = Field(default=30.0, gt=0)
    run_budget_seconds: float | None = None
    clock: str = "system"  # "system" or "fixed:<ISO-8601 timestamp>"
    tools: list[ToolSpec] = Field(
        default_factory=lambda: [
            ToolSpec(name="ui-tests", command=["npx", "playwright", "test"]),
        ]
    )

    @field_validator("clock")
    @classmethod
    def _check_clock(cls, value: str) -> str:
        if value == "system":
            return value
        if value.startswith("fixed:"):
            datetime.fromisoformat(value.removeprefix("fixed:").replace("Z", "+00:00"))
            return value
        raise ValueError("clock must be 'system' or 'fixed:<ISO-8601 timestamp>'")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> PipelineConfig:
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Invalid pipeline configuration: {exc}") from exc

    @classmethod
    def from_file(cls, path: Path) -> PipelineConfig:
        """Load from a ``.toml`` or ``.json`` file.

        For ``pyproject.toml`` only the ``[tool.qaforge]`` table is read.
        """
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        try:
            if path.suffix == ".json":
                data = json.loads(path.read_text(encoding="utf-8"))
            else:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
                if path.name == "pyproject.toml":
                    data = data.get("tool", {}).get("qaforge", {})
        except (OSError, ValueError) as exc:
            raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration {path} must be a table/object")
        return cls.from_mapping(data)

    @classmethod
    def discover(cls, start: Path = Path(".")) -> PipelineConfig:
        """Load ``qaforge.toml`` or ``pyproject.toml [tool.qaforge]`` if present."""
        candidate = start / "qaforge.toml"
        if candidate.exists():
            return cls.from_file(candidate)
        pyproject = start / "pyproject.toml"
        if pyproject.exists():
            return cls.from_file(pyproject)
        return cls()
