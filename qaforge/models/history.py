"""History entries and the trend computed over them."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class HistoryEntry(BaseModel):
    """Per-run projection that outlives the run."""

    model_config = _CAMEL

    timestamp: datetime
    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    pass_rate: float = Field(default=0.0, ge=0.0, le=100.0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are read as UTC so mixed files still sort.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class TrendAnalysis(BaseModel):
    model_config = _CAMEL

    direction: TrendDirection
    current: float | None = None
    previous: float | None = None
    delta: float = 0.0
    total_runs: int = 0
    recent_runs: int = 0
