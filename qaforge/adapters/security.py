"""Security scan adapter.

A record is a vulnerability when ``vulnerable`` is true or its risk is
HIGH (or CRITICAL); a non-vulnerable MEDIUM record is a warning.  Optional
``vulnerabilities_by_severity`` counts add straight to the severity counts;
the top-level map wins over the one under ``summary`` when both exist.
"""

from __future__ import annotations

from typing import Any

from qaforge.adapters.base import BaseAdapter, ParseContext, dict_list, first_text, suite_label
from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.results import CaseResult, CaseStatus, Category, SuiteResult

SEVERITIES = ("critical", "high", "medium", "low")

_RECORD_KEYS = ("testResults", "results", "tests", "findings")


def _records(document: Any) -> list[dict[str, Any]]:
    if isinstance(document, list):
        return dict_list(document)
    if isinstance(document, dict):
        for key in _RECORD_KEYS:
            if isinstance(document.get(key), list):
                return dict_list(document[key])
    return []


def _severity_map(document: Any) -> dict[str, Any] | None:
    if not isinstance(document, dict):
        return None
    for holder in (document, document.get("summary")):
        if isinstance(holder, dict) and isinstance(holder.get("vulnerabilities_by_severity"), dict):
            return holder["vulnerabilities_by_severity"]
    return None


class SecurityAdapter(BaseAdapter):
    origin = ArtifactOrigin.SECURITY
    category = Category.SECURITY
    name = "security"

    def detect(self, document: Any) -> bool:
        if _severity_map(document) is not None:
            return True
        return any("vulnerable" in r or "risk" in r for r in _records(document))

    def parse(self, artifact: Artifact, document: Any, ctx: ParseContext) -> SuiteResult:
        counts: dict[str, int] = {}
        cases: list[CaseResult] = []
        for index, record in enumerate(_records(document)):
            if "vulnerable" not in record and "risk" not in record:
                continue
            risk = str(record.get("risk") or "").strip().lower()
            vulnerable = bool(record.get("vulnerable"))
            if vulnerable or risk in ("high", "critical"):
                status = CaseStatus.FAILED
                severity = risk if risk in SEVERITIES else "high"
                counts[severity] = counts.get(severity, 0) + 1
            else:
                status = CaseStatus.PASSED
                if risk == "medium":
                    counts["medium"] = counts.get("medium", 0) + 1
            cases.append(
                CaseResult(
                    name=first_text(record, "name", "test", "type", "id") or f"check-{index + 1}",
                    status=status,
                )
            )

        for key, value in (_severity_map(document) or {}).items():
            severity = str(key).lower()
            counts[severity] = counts.get(severity, 0) + ctx.count(
                value, f"vulnerabilities_by_severity.{key}"
            )

        return SuiteResult.build(
            suite_label(artifact),
            self.category,
            cases=cases,
            severity_counts={k: v for k, v in counts.items() if v},
        )
