"""HTTP collection runner adapter (Newman-style JSON export)."""

from __future__ import annotations

from typing import Any

from qaforge.adapters.base import BaseAdapter, ParseContext, first_text
from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.results import Category, SuiteResult, Totals


def _collection_name(document: dict[str, Any]) -> str | None:
    for holder in (document, document.get("run") or {}):
        collection = holder.get("collection") if isinstance(holder, dict) else None
        if isinstance(collection, dict):
            info = collection.get("info")
            if isinstance(info, dict):
                name = first_text(info, "name")
                if name:
                    return name
            name = first_text(collection, "name")
            if name:
                return name
    return None


class HttpCollectionAdapter(BaseAdapter):
    """One suite per collection run: ``passed = tests.total - tests.failed``."""

    origin = ArtifactOrigin.HTTP_COLLECTION
    category = Category.API
    name = "http-collection"

    def detect(self, document: Any) -> bool:
        if not isinstance(document, dict):
            return False
        run = document.get("run")
        return isinstance(run, dict) and isinstance(run.get("stats"), dict)

    def parse(self, artifact: Artifact, document: Any, ctx: ParseContext) -> SuiteResult:
        run = document["run"]
        stats = run["stats"]
        tests = stats.get("tests") if isinstance(stats.get("tests"), dict) else {}
        total = ctx.count(tests.get("total"), "stats.tests.total")
        failed = ctx.count(tests.get("failed"), "stats.tests.failed")

        metrics: dict[str, float] = {}
        for block in ("assertions", "requests"):
            counters = stats.get(block)
            if isinstance(counters, dict):
                metrics[f"{block}Total"] = ctx.count(counters.get("total"), f"stats.{block}.total")
                metrics[f"{block}Failed"] = ctx.count(counters.get("failed"), f"stats.{block}.failed")

        timings = run.get("timings") if isinstance(run.get("timings"), dict) else {}
        completed = ctx.count(timings.get("completed"), "timings.completed")
        if "started" in timings:
            started = ctx.count(timings.get("started"), "timings.started")
            duration = max(0, completed - started)
        else:
            duration = completed

        name = _collection_name(document) or artifact.path.stem
        return SuiteResult(
            name=name,
            category=self.category,
            totals=Totals.reconciled(
                passed=max(0, total - failed), failed=failed, total=total, duration_ms=duration
            ),
            metrics=metrics,
        )
