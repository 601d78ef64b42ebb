"""Normalized JSON report (``test-results.json``) — the stable contract."""

from __future__ import annotations

from typing import Any

from qaforge.core.clock import iso_utc
from qaforge.core.hasher import canonical_json_text
from qaforge.core.metrics import pass_rate
from qaforge.emitters.views import ReportBundle
from qaforge.models.results import Totals
from qaforge.models.snapshot import AggregateSnapshot


def counts(totals: Totals) -> dict[str, Any]:
    return {
        "total": totals.total,
        "passed": totals.passed,
        "failed": totals.failed,
        "skipped": totals.skipped,
        "duration": totals.duration_ms,
    }


def normalized_payload(snapshot: AggregateSnapshot, generated_at: str) -> dict[str, Any]:
    """The normalized document as plain JSON data."""
    payload: dict[str, Any] = counts(snapshot.totals)
    payload["passRate"] = pass_rate(snapshot.totals)
    payload["environments"] = {
        env: {
            **counts(entry.totals),
            "browsers": {b: counts(t) for b, t in entry.browsers.items()},
        }
        for env, entry in snapshot.by_environment.items()
    }
    payload["browsers"] = {
        browser: {
            **counts(entry.totals),
            "environments": {e: counts(t) for e, t in entry.environments.items()},
        }
        for browser, entry in snapshot.by_browser.items()
    }
    payload["suites"] = {
        name: {
            **counts(entry.totals),
            "category": entry.category.value,
            "environments": {e: counts(t) for e, t in entry.environments.items()},
            "browsers": {b: counts(t) for b, t in entry.browsers.items()},
        }
        for name, entry in snapshot.by_suite.items()
    }
    payload["categories"] = {
        name: {
            **counts(entry.totals),
            "severityCounts": dict(entry.severity_counts),
            "metrics": dict(entry.metrics),
            "suites": list(entry.suites),
        }
        for name, entry in snapshot.by_category.items()
    }
    payload["errors"] = [str(d) for d in snapshot.errors]
    payload["metadata"] = dict(snapshot.metadata)
    payload["generatedAt"] = generated_at
    return payload


def render_normalized(bundle: ReportBundle) -> str:
    return canonical_json_text(normalized_payload(bundle.snapshot, iso_utc(bundle.generated_at)))
