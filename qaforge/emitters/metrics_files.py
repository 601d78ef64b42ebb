"""Machine-readable metrics (``metrics/latest-metrics.json``)."""

from __future__ import annotations

from typing import Any

from qaforge.core.clock import iso_utc
from qaforge.core.hasher import canonical_json_text
from qaforge.emitters.views import ReportBundle


def latest_metrics(bundle: ReportBundle) -> dict[str, Any]:
    snapshot, quality = bundle.snapshot, bundle.quality
    return {
        "timestamp": iso_utc(bundle.generated_at),
        "summary": {
            "totalTests": snapshot.totals.total,
            "passed": snapshot.totals.passed,
            "failed": snapshot.totals.failed,
            "skipped": snapshot.totals.skipped,
            "passRate": quality.pass_rate,
            "qualityScore": quality.quality_score,
            "overallHealth": quality.overall_health.value,
            "alerts": [a.model_dump(mode="json", by_alias=True) for a in quality.alerts],
        },
        "categories": {
            name: {
                "total": entry.totals.total,
                "passed": entry.totals.passed,
                "failed": entry.totals.failed,
                "skipped": entry.totals.skipped,
                "severityCounts": dict(entry.severity_counts),
                "metrics": dict(entry.metrics),
            }
            for name, entry in snapshot.by_category.items()
        },
        "quality": quality.model_dump(mode="json", by_alias=True),
        "trend": bundle.trend.model_dump(mode="json", by_alias=True),
        "errors": [str(d) for d in snapshot.errors],
    }


def render_latest_metrics(bundle: ReportBundle) -> str:
    return canonical_json_text(latest_metrics(bundle))
