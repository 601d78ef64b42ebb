"""Code-coverage summary adapter (Istanbul ``coverage-summary.json``)."""

from __future__ import annotations

from typing import Any

from qaforge.adapters.base import BaseAdapter, ParseContext, suite_label
from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.results import Category, SuiteResult

COVERAGE_KINDS = ("statements", "branches", "functions", "lines")


class CoverageAdapter(BaseAdapter):
    """Emits no test counts; only ``<kind>Total/Covered/Pct`` metrics."""

    origin = ArtifactOrigin.COVERAGE
    category = Category.COVERAGE
    name = "coverage"

    def detect(self, document: Any) -> bool:
        if not isinstance(document, dict):
            return False
        total = document.get("total")
        return isinstance(total, dict) and any(
            isinstance(total.get(kind), dict) for kind in COVERAGE_KINDS
        )

    def parse(self, artifact: Artifact, document: Any, ctx: ParseContext) -> SuiteResult:
        metrics: dict[str, float] = {}
        for kind in COVERAGE_KINDS:
            block = document["total"].get(kind)
            if not isinstance(block, dict):
                continue
            metrics[f"{kind}Total"] = ctx.count(block.get("total"), f"total.{kind}.total")
            metrics[f"{kind}Covered"] = ctx.count(block.get("covered"), f"total.{kind}.covered")
            pct = ctx.number(block.get("pct"), f"total.{kind}.pct")
            if pct is not None:
                metrics[f"{kind}Pct"] = min(100.0, max(0.0, pct))
        return SuiteResult(name=suite_label(artifact), category=self.category, metrics=metrics)
