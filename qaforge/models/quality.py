"""Derived quality models — scores, gates, alerts and executive findings."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class GateVerdict(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class AlertLevel(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class HealthStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class ScoreBand(str, Enum):
    """Display band for a 0-100 score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class Gate(BaseModel):
    """Outcome of one threshold check."""

    model_config = _CAMEL

    name: str
    metric: str
    comparator: str  # "ge" or "le"
    threshold: float
    actual: float
    verdict: GateVerdict


class Alert(BaseModel):
    model_config = _CAMEL

    level: AlertLevel
    gate: str
    message: str


class SubdomainScore(BaseModel):
    """Score of one quality subdomain (ui, api, performance, ...)."""

    model_config = _CAMEL

    name: str
    score: float = Field(ge=0.0, le=100.0)
    band: ScoreBand
    weight: float


class Finding(BaseModel):
    model_config = _CAMEL

    kind: str  # "positive" or "negative"
    category: str
    message: str


class Risk(BaseModel):
    model_config = _CAMEL

    category: str
    level: str  # "low", "medium", "high"
    description: str


class Recommendation(BaseModel):
    model_config = _CAMEL

    category: str
    priority: str  # "critical", "high", "medium", "low"
    message: str


class NextStep(BaseModel):
    model_config = _CAMEL

    phase: str
    timeline: str
    actions: list[str]


class QualityReport(BaseModel):
    """Everything derived from one snapshot by the metric functions."""

    model_config = _CAMEL

    pass_rate: float = 0.0
    fail_rate: float = 0.0
    average_duration_ms: float = 0.0
    coverage_percent: float | None = None
    error_rate_percent: float | None = None
    subdomains: dict[str, SubdomainScore] = Field(default_factory=dict)
    quality_score: float | None = None
    gates: list[Gate] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    overall_health: HealthStatus = HealthStatus.GOOD
    findings: list[Finding] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    next_steps: list[NextStep] = Field(default_factory=list)

    @property
    def quality_gate(self) -> HealthStatus:
        return self.overall_health

    def gate(self, name: str) -> Gate | None:
        for gate in self.gates:
            if gate.name == name:
                return gate
        return None
