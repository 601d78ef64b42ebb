"""Browser-automation adapter.

Accepted shapes, in order of preference:

1. Native nested report: ``suites[]`` with ``tests[]``, ``specs[].tests[]``
   and nested ``suites[]``; each test's final ``results[]`` entry is its
   outcome and the number of entries its attempt count.
2. Stats-only: ``stats{total, passed, failed, skipped, duration}`` or the
   ``stats{expected, unexpected, flaky, skipped, duration}`` variant.
3. Jest-style: ``numTotalTests`` / ``numPassedTests`` / ... with optional
   ``testResults[].assertionResults[]``.
4. HTML fallback: four labelled integers pulled out of ``index.html``.

When a document carries both per-test data and stats, the tests win.
"""

from __future__ import annotations

import re
from typing import Any

from qaforge.adapters.base import BaseAdapter, ParseContext, dict_list, first_text, suite_label
from qaforge.core.classifier import browser_from_project
from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.results import CaseResult, CaseStatus, Category, SuiteResult, Totals

_STATUS_MAP: dict[str, CaseStatus] = {
    "passed": CaseStatus.PASSED,
    "expected": CaseStatus.PASSED,
    "flaky": CaseStatus.PASSED,
    "failed": CaseStatus.FAILED,
    "unexpected": CaseStatus.FAILED,
    "timedout": CaseStatus.FAILED,
    "interrupted": CaseStatus.FAILED,
    "skipped": CaseStatus.SKIPPED,
    "pending": CaseStatus.SKIPPED,
    "disabled": CaseStatus.SKIPPED,
    "todo": CaseStatus.SKIPPED,
}

_HTML_PATTERNS: dict[str, re.Pattern[str]] = {
    "total": re.compile(r"(\d+)\s*tests?\s*total", re.IGNORECASE),
    "passed": re.compile(r"(\d+)\s*passed", re.IGNORECASE),
    "failed": re.compile(r"(\d+)\s*failed", re.IGNORECASE),
    "skipped": re.compile(r"(\d+)\s*skipped", re.IGNORECASE),
}

_STATS_KEYS = ("total", "passed", "failed", "expected", "unexpected")


def map_status(value: Any) -> CaseStatus | None:
    if not isinstance(value, str):
        return None
    return _STATUS_MAP.get(value.strip().lower())


class BrowserAutomationAdapter(BaseAdapter):
    origin = ArtifactOrigin.BROWSER_AUTOMATION
    category = Category.UI
    name = "browser-automation"

    def detect(self, document: Any) -> bool:
        if isinstance(document, str):
            return any(p.search(document) for p in _HTML_PATTERNS.values())
        if not isinstance(document, dict):
            return False
        if isinstance(document.get("suites"), list):
            return True
        stats = document.get("stats")
        if isinstance(stats, dict) and any(k in stats for k in _STATS_KEYS):
            return True
        return "numTotalTests" in document

    def parse(self, artifact: Artifact, document: Any, ctx: ParseContext) -> SuiteResult:
        root_name = suite_label(artifact)
        if isinstance(document, str):
            return SuiteResult(name=root_name, category=self.category,
                               totals=self._html_totals(document, ctx))

        children = [
            self._parse_suite(node, ctx, f"suite-{index + 1}")
            for index, node in enumerate(dict_list(document.get("suites")))
        ]
        children += self._jest_children(document, ctx)

        stats = document.get("stats")
        duration = None
        if isinstance(stats, dict) and "duration" in stats:
            duration = ctx.count(stats.get("duration"), "stats.duration")

        if any(child.totals.total for child in children):
            return SuiteResult.build(root_name, self.category, children=children,
                                     duration_ms=duration)
        if isinstance(stats, dict) and any(k in stats for k in _STATS_KEYS):
            return SuiteResult(name=root_name, category=self.category,
                               totals=self._stats_totals(stats, ctx))
        if "numTotalTests" in document:
            return SuiteResult(name=root_name, category=self.category,
                               totals=self._jest_totals(document, ctx))
        return SuiteResult.build(root_name, self.category, children=children,
                                 duration_ms=duration)

    # ------------------------------------------------------------------
    # Native nested shape
    # ------------------------------------------------------------------

    def _parse_suite(self, node: dict[str, Any], ctx: ParseContext, fallback: str) -> SuiteResult:
        name = first_text(node, "title", "name", "file") or fallback
        children = [
            self._parse_suite(child, ctx, f"{name}/suite-{index + 1}")
            for index, child in enumerate(dict_list(node.get("suites")))
        ]
        cases = [
            self._parse_test(test, ctx, f"{name}/test-{index + 1}")
            for index, test in enumerate(dict_list(node.get("tests")))
        ]
        for spec_index, spec in enumerate(dict_list(node.get("specs"))):
            spec_name = first_text(spec, "title", "name") or f"{name}/spec-{spec_index + 1}"
            tests = dict_list(spec.get("tests"))
            for test in tests:
                label = spec_name
                project = first_text(test, "projectName", "projectId")
                if len(tests) > 1 and project:
                    label = f"{spec_name} [{project}]"
                cases.append(self._parse_test(test, ctx, label, default_name=label))
        return SuiteResult.build(name, self.category, children=children, cases=cases)

    def _parse_test(
        self,
        test: dict[str, Any],
        ctx: ParseContext,
        fallback: str,
        default_name: str | None = None,
    ) -> CaseResult:
        name = default_name or first_text(test, "title", "name", "fullName") or fallback
        results = dict_list(test.get("results"))
        if results:
            status = map_status(results[-1].get("status"))
            duration = sum(ctx.count(r.get("duration"), "results.duration") for r in results)
        else:
            status = map_status(test.get("status") or test.get("state"))
            duration = ctx.count(test.get("duration"), "test.duration")
        project = first_text(test, "projectName", "projectId")
        return CaseResult(
            name=name,
            status=status,
            duration_ms=duration,
            attempt_count=len(results) if results else 1,
            browser=browser_from_project(project),
        )

    # ------------------------------------------------------------------
    # Counter-only shapes
    # ------------------------------------------------------------------

    def _stats_totals(self, stats: dict[str, Any], ctx: ParseContext) -> Totals:
        duration = ctx.count(stats.get("duration"), "stats.duration")
        skipped = ctx.count(stats.get("skipped"), "stats.skipped") + ctx.count(
            stats.get("pending"), "stats.pending"
        )
        if any(k in stats for k in ("total", "passed", "failed")):
            total = ctx.count(stats.get("total"), "stats.total") if "total" in stats else None
            return Totals.reconciled(
                passed=ctx.count(stats.get("passed"), "stats.passed"),
                failed=ctx.count(stats.get("failed"), "stats.failed"),
                skipped=skipped,
                total=total,
                duration_ms=duration,
            )
        return Totals.reconciled(
            passed=ctx.count(stats.get("expected"), "stats.expected")
            + ctx.count(stats.get("flaky"), "stats.flaky"),
            failed=ctx.count(stats.get("unexpected"), "stats.unexpected"),
            skipped=skipped,
            duration_ms=duration,
        )

    def _jest_totals(self, document: dict[str, Any], ctx: ParseContext) -> Totals:
        return Totals.reconciled(
            passed=ctx.count(document.get("numPassedTests"), "numPassedTests"),
            failed=ctx.count(document.get("numFailedTests"), "numFailedTests"),
            skipped=ctx.count(document.get("numPendingTests"), "numPendingTests")
            + ctx.count(document.get("numTodoTests"), "numTodoTests"),
            total=ctx.count(document.get("numTotalTests"), "numTotalTests"),
        )

    def _jest_children(self, document: dict[str, Any], ctx: ParseContext) -> list[SuiteResult]:
        children = []
        for index, entry in enumerate(dict_list(document.get("testResults"))):
            assertions = dict_list(entry.get("assertionResults"))
            if not assertions:
                continue
            name = first_text(entry, "name", "testFilePath") or f"test-file-{index + 1}"
            cases = [
                CaseResult(
                    name=first_text(a, "fullName", "title") or f"{name}/test-{i + 1}",
                    status=map_status(a.get("status")),
                    duration_ms=ctx.count(a.get("duration"), "assertionResults.duration"),
                )
                for i, a in enumerate(assertions)
            ]
            children.append(SuiteResult.build(name, self.category, cases=cases))
        return children

    def _html_totals(self, text: str, ctx: ParseContext) -> Totals:
        found: dict[str, int] = {}
        for key, pattern in _HTML_PATTERNS.items():
            match = pattern.search(text)
            if match:
                found[key] = ctx.count(int(match.group(1)), f"html.{key}")
        return Totals.reconciled(
            passed=found.get("passed", 0),
            failed=found.get("failed", 0),
            skipped=found.get("skipped", 0),
            total=found.get("total"),
        )
