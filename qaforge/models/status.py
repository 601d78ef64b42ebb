"""Status monitor record — the live progress file of a long orchestration."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class OverallStatus(str, Enum):
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    COMPLETED = "completed"


class SuiteStatus(BaseModel):
    """Latest reported state of one suite; extra detail keys are kept."""

    model_config = _CAMEL

    status: str
    last_update: datetime
    duration: float | None = None
    tests: int | None = None
    passed: int | None = None
    failed: int | None = None


class StatusError(BaseModel):
    model_config = _CAMEL

    timestamp: datetime
    error: str
    suite: str | None = None
    stack: str | None = None


class StatusWarning(BaseModel):
    model_config = _CAMEL

    timestamp: datetime
    warning: str
    suite: str | None = None


class StatusRecord(BaseModel):
    """Whole-file record; rewritten atomically on every update."""

    model_config = _CAMEL

    overall: OverallStatus = OverallStatus.RUNNING
    suites: dict[str, SuiteStatus] = Field(default_factory=dict)
    errors: list[StatusError] = Field(default_factory=list)
    warnings: list[StatusWarning] = Field(default_factory=list)
    start_time: datetime
    last_update: datetime
    end_time: datetime | None = None


class StatusSummary(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    overall: OverallStatus
    duration_seconds: float
    passed_suites: int
    failed_suites: int
    total_suites: int
    errors: int
    warnings: int
    suites: dict[str, str] = Field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
