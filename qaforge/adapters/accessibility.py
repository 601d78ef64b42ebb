"""Accessibility scan adapter (axe-style ``violations[]`` per page)."""

from __future__ import annotations

from typing import Any

from qaforge.adapters.base import BaseAdapter, ParseContext, dict_list, first_text, suite_label
from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.results import CaseResult, CaseStatus, Category, SuiteResult

IMPACTS = ("critical", "serious", "moderate", "minor")


def _scans(document: Any) -> list[dict[str, Any]]:
    if isinstance(document, list):
        return dict_list(document)
    if isinstance(document, dict):
        if isinstance(document.get("violations"), list):
            return [document]
        for key in ("scans", "results", "pages"):
            if isinstance(document.get(key), list):
                return dict_list(document[key])
    return []


class AccessibilityAdapter(BaseAdapter):
    """A scan with zero violations passes; counts are keyed by impact."""

    origin = ArtifactOrigin.ACCESSIBILITY
    category = Category.ACCESSIBILITY
    name = "accessibility"

    def detect(self, document: Any) -> bool:
        return any(isinstance(scan.get("violations"), list) for scan in _scans(document))

    def parse(self, artifact: Artifact, document: Any, ctx: ParseContext) -> SuiteResult:
        counts: dict[str, int] = {}
        cases: list[CaseResult] = []
        for index, scan in enumerate(_scans(document)):
            violations = dict_list(scan.get("violations"))
            for violation in violations:
                impact = violation.get("impact")
                impact = impact.lower() if isinstance(impact, str) and impact else "minor"
                counts[impact] = counts.get(impact, 0) + 1
            cases.append(
                CaseResult(
                    name=first_text(scan, "url", "page", "name", "id") or f"scan-{index + 1}",
                    status=CaseStatus.FAILED if violations else CaseStatus.PASSED,
                )
            )
        return SuiteResult.build(
            suite_label(artifact),
            self.category,
            cases=cases,
            severity_counts=counts,
        )
