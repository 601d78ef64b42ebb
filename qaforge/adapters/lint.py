"""Static-analysis adapter (ESLint JSON formatter output)."""

from __future__ import annotations

from typing import Any

from qaforge.adapters.base import BaseAdapter, ParseContext, dict_list, suite_label
from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.results import CaseResult, CaseStatus, Category, SuiteResult


class LintAdapter(BaseAdapter):
    origin = ArtifactOrigin.LINT
    category = Category.LINT
    name = "lint"

    def detect(self, document: Any) -> bool:
        return any(
            "filePath" in entry and "errorCount" in entry for entry in dict_list(document)
        )

    def parse(self, artifact: Artifact, document: Any, ctx: ParseContext) -> SuiteResult:
        cases = []
        errors = warnings = 0
        for index, entry in enumerate(dict_list(document)):
            file_errors = ctx.count(entry.get("errorCount"), "errorCount")
            file_warnings = ctx.count(entry.get("warningCount"), "warningCount")
            errors += file_errors
            warnings += file_warnings
            name = entry.get("filePath")
            cases.append(
                CaseResult(
                    name=name if isinstance(name, str) and name else f"file-{index + 1}",
                    status=CaseStatus.FAILED if file_errors else CaseStatus.PASSED,
                )
            )
        return SuiteResult.build(
            suite_label(artifact),
            self.category,
            cases=cases,
            metrics={"errors": float(errors), "warnings": float(warnings), "files": float(len(cases))},
        )
