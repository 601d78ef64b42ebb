"""qaforge data models — all pydantic v2 BaseModel subclasses."""

from qaforge.models.artifacts import (
    UNKNOWN,
    Artifact,
    ArtifactOrigin,
    MediaFile,
    MediaKind,
    PathTags,
)
from qaforge.models.config import (
    ConfigError,
    GateSpec,
    PipelineConfig,
    ToolSpec,
)
from qaforge.models.diagnostics import Diagnostic, DiagnosticKind, DiagnosticLog
from qaforge.models.history import HistoryEntry, TrendAnalysis, TrendDirection
from qaforge.models.quality import (
    Alert,
    AlertLevel,
    Finding,
    Gate,
    GateVerdict,
    HealthStatus,
    NextStep,
    QualityReport,
    Recommendation,
    Risk,
    ScoreBand,
    SubdomainScore,
)
from qaforge.models.results import (
    CaseResult,
    CaseStatus,
    Category,
    SuiteResult,
    Totals,
)
from qaforge.models.snapshot import (
    AggregateSnapshot,
    BrowserEntry,
    CategorySummary,
    EnvironmentEntry,
    SuiteEntry,
)
from qaforge.models.status import (
    OverallStatus,
    StatusError,
    StatusRecord,
    StatusSummary,
    StatusWarning,
    SuiteStatus,
)

__all__ = [
    # artifacts
    "UNKNOWN",
    "Artifact",
    "ArtifactOrigin",
    "MediaFile",
    "MediaKind",
    "PathTags",
    # config
    "ConfigError",
    "GateSpec",
    "PipelineConfig",
    "ToolSpec",
    # diagnostics
    "Diagnostic",
    "DiagnosticKind",
    "DiagnosticLog",
    # history
    "HistoryEntry",
    "TrendAnalysis",
    "TrendDirection",
    # quality
    "Alert",
    "AlertLevel",
    "Finding",
    "Gate",
    "GateVerdict",
    "HealthStatus",
    "NextStep",
    "QualityReport",
    "Recommendation",
    "Risk",
    "ScoreBand",
    "SubdomainScore",
    # results
    "CaseResult",
    "CaseStatus",
    "Category",
    "SuiteResult",
    "Totals",
    # snapshot
    "AggregateSnapshot",
    "BrowserEntry",
    "CategorySummary",
    "EnvironmentEntry",
    "SuiteEntry",
    # status
    "OverallStatus",
    "StatusError",
    "StatusRecord",
    "StatusSummary",
    "StatusWarning",
    "SuiteStatus",
]
