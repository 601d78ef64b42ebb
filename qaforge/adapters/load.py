"""Load-generator adapter.

Three input shapes are reduced to one summary:

- ``{scenario, summary: {totalRequests, successfulRequests, failedRequests,
  averageResponseTime, p50/p90/p95/p99ResponseTime, throughput, errorRate}}``
- ``{stats: {http_req_duration: {p50, p95, p99}, http_req_failed: {rate}},
  metrics: {http_reqs: {count}}}``
- a k6 summary export, ``{metrics: {http_req_duration: {values: {...}}}}``

Each percentile field is filled only from the same percentile in the
source; p90 and p95 are never substituted for one another.
"""

from __future__ import annotations

from typing import Any

from qaforge.adapters.base import BaseAdapter, ParseContext, first_text
from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.results import Category, SuiteResult, Totals

PERCENTILE_FIELDS = ("p50ResponseTime", "p90ResponseTime", "p95ResponseTime", "p99ResponseTime")

# Source key -> summary field, for the k6 families.
_K6_DURATION_KEYS: dict[str, str] = {
    "avg": "averageResponseTime",
    "p50": "p50ResponseTime",
    "med": "p50ResponseTime",
    "p(50)": "p50ResponseTime",
    "p90": "p90ResponseTime",
    "p(90)": "p90ResponseTime",
    "p95": "p95ResponseTime",
    "p(95)": "p95ResponseTime",
    "p99": "p99ResponseTime",
    "p(99)": "p99ResponseTime",
}


def _values(block: Any) -> dict[str, Any]:
    """A k6 metric block, with or without the ``values`` wrapper."""
    if not isinstance(block, dict):
        return {}
    inner = block.get("values")
    return inner if isinstance(inner, dict) else block


class LoadGeneratorAdapter(BaseAdapter):
    origin = ArtifactOrigin.LOAD_GENERATOR
    category = Category.PERFORMANCE
    name = "load-generator"

    def detect(self, document: Any) -> bool:
        if not isinstance(document, dict):
            return False
        summary = document.get("summary")
        if isinstance(summary, dict) and (
            "totalRequests" in summary or "averageResponseTime" in summary
        ):
            return True
        for holder in ("stats", "metrics"):
            block = document.get(holder)
            if isinstance(block, dict) and "http_req_duration" in block:
                return True
        return False

    def parse(self, artifact: Artifact, document: Any, ctx: ParseContext) -> SuiteResult:
        summary = document.get("summary")
        if isinstance(summary, dict) and (
            "totalRequests" in summary or "averageResponseTime" in summary
        ):
            reduced = self._from_summary(summary, ctx)
        else:
            reduced = self._from_k6(document, ctx)

        total = int(reduced.pop("totalRequests", 0))
        failed = int(reduced.pop("failedRequests", 0))
        successful = reduced.pop("successfulRequests", None)
        passed = int(successful) if successful is not None else max(0, total - failed)
        duration = int(reduced.pop("durationMs", 0))

        metrics: dict[str, float] = {"totalRequests": float(total), "failedRequests": float(failed)}
        average = reduced.pop("averageResponseTime", None)
        if average is not None and total > 0:
            metrics["responseTimeSumMs"] = average * total
        if average is not None:
            metrics["averageResponseTime"] = average
        metrics.update(reduced)

        name = first_text(document, "scenario", "name") or artifact.path.stem
        return SuiteResult(
            name=name,
            category=self.category,
            totals=Totals.reconciled(passed=passed, failed=failed, total=total, duration_ms=duration),
            metrics=metrics,
        )

    # ------------------------------------------------------------------
    # Shape reducers
    # ------------------------------------------------------------------

    def _from_summary(self, summary: dict[str, Any], ctx: ParseContext) -> dict[str, float]:
        reduced: dict[str, float] = {
            "totalRequests": ctx.count(summary.get("totalRequests"), "summary.totalRequests"),
            "failedRequests": ctx.count(summary.get("failedRequests"), "summary.failedRequests"),
        }
        if "successfulRequests" in summary:
            reduced["successfulRequests"] = ctx.count(
                summary.get("successfulRequests"), "summary.successfulRequests"
            )
        if "duration" in summary:
            reduced["durationMs"] = ctx.count(summary.get("duration"), "summary.duration")
        for key in ("averageResponseTime", "throughput", *PERCENTILE_FIELDS):
            value = ctx.number(summary.get(key), f"summary.{key}")
            if value is not None:
                reduced[key] = max(0.0, value)
        error_rate = ctx.number(summary.get("errorRate"), "summary.errorRate")
        if error_rate is not None:
            reduced["errorRatePercent"] = max(0.0, error_rate)
        return reduced

    def _from_k6(self, document: dict[str, Any], ctx: ParseContext) -> dict[str, float]:
        stats = document.get("stats") if isinstance(document.get("stats"), dict) else {}
        metrics = document.get("metrics") if isinstance(document.get("metrics"), dict) else {}

        durations = _values(stats.get("http_req_duration") or metrics.get("http_req_duration"))
        failed_block = _values(stats.get("http_req_failed") or metrics.get("http_req_failed"))
        requests_block = _values(metrics.get("http_reqs") or stats.get("http_reqs"))

        reduced: dict[str, float] = {}
        for source_key, target in _K6_DURATION_KEYS.items():
            if target in reduced:
                continue
            value = ctx.number(durations.get(source_key), f"http_req_duration.{source_key}")
            if value is not None:
                reduced[target] = max(0.0, value)

        total = ctx.count(requests_block.get("count"), "http_reqs.count")
        rate = ctx.number(failed_block.get("rate"), "http_req_failed.rate")
        rate = min(1.0, max(0.0, rate)) if rate is not None else None
        reduced["totalRequests"] = total
        reduced["failedRequests"] = round(rate * total) if rate is not None else 0
        if rate is not None:
            reduced["errorRatePercent"] = rate * 100.0
        throughput = ctx.number(requests_block.get("rate"), "http_reqs.rate")
        if throughput is not None:
            reduced["throughput"] = max(0.0, throughput)
        return reduced
