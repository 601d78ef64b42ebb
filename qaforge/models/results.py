"""Normalized result models — the uniform shape every adapter produces.

A ``SuiteResult`` is a recursive tree.  Counts live in ``Totals`` and obey
``total == passed + failed + skipped`` at every node.  A node that has
children or cases carries exactly the sum of them; a leaf without cases
(e.g. a stats-only report) carries its own counts.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class CaseStatus(str, Enum):
    """Final status of a single test case."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class Category(str, Enum):
    """Quality subdomain a suite belongs to."""

    UI = "ui"
    API = "api"
    PERFORMANCE = "performance"
    ACCESSIBILITY = "accessibility"
    SECURITY = "security"
    COVERAGE = "coverage"
    LINT = "lint"


class Totals(BaseModel):
    """Non-negative outcome counters plus wall-clock duration."""

    model_config = _CAMEL

    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_sum(self) -> Totals:
        if self.total != self.passed + self.failed + self.skipped:
            raise ValueError(
                f"total ({self.total}) != passed + failed + skipped "
                f"({self.passed} + {self.failed} + {self.skipped})"
            )
        return self

    @classmethod
    def reconciled(
        cls,
        *,
        passed: int,
        failed: int,
        skipped: int = 0,
        total: int | None = None,
        duration_ms: int = 0,
    ) -> Totals:
        """Build totals from declared counters that may not add up.

        A declared ``total`` larger than the counted outcomes contributes
        the shortfall to ``skipped``; a smaller one is raised to the sum.
        """
        counted = passed + failed + skipped
        if total is not None and total > counted:
            skipped += total - counted
        return cls(
            total=passed + failed + skipped,
            passed=passed,
            failed=failed,
            skipped=skipped,
            duration_ms=duration_ms,
        )

    def __add__(self, other: Totals) -> Totals:
        return Totals(
            total=self.total + other.total,
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            skipped=self.skipped + other.skipped,
            duration_ms=self.duration_ms + other.duration_ms,
        )

    def minus(self, other: Totals) -> Totals:
        """Component-wise difference, clamped at zero."""
        passed = max(0, self.passed - other.passed)
        failed = max(0, self.failed - other.failed)
        skipped = max(0, self.skipped - other.skipped)
        return Totals(
            total=passed + failed + skipped,
            passed=passed,
            failed=failed,
            skipped=skipped,
            duration_ms=max(0, self.duration_ms - other.duration_ms),
        )

    @property
    def is_empty(self) -> bool:
        return self.total == 0


class CaseResult(BaseModel):
    """One executed test case.  ``status=None`` contributes nothing."""

    model_config = _CAMEL

    name: str
    status: CaseStatus | None = None
    duration_ms: int = Field(default=0, ge=0)
    attempt_count: int = Field(default=1, ge=0)
    browser: str | None = None

    @property
    def totals(self) -> Totals:
        return Totals(
            total=1 if self.status is not None else 0,
            passed=1 if self.status == CaseStatus.PASSED else 0,
            failed=1 if self.status == CaseStatus.FAILED else 0,
            skipped=1 if self.status == CaseStatus.SKIPPED else 0,
            duration_ms=self.duration_ms,
        )


class SuiteResult(BaseModel):
    """A recursive suite node produced by an adapter."""

    model_config = _CAMEL

    name: str = Field(min_length=1)
    category: Category
    totals: Totals = Field(default_factory=Totals)
    children: list[SuiteResult] = Field(default_factory=list)
    cases: list[CaseResult] = Field(default_factory=list)
    metrics: dict[str, float] = Field(default_factory=dict)
    severity_counts: dict[str, int] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_rollup(self) -> SuiteResult:
        if not self.children and not self.cases:
            return self
        rolled = self.rollup()
        if (rolled.passed, rolled.failed, rolled.skipped) != (
            self.totals.passed,
            self.totals.failed,
            self.totals.skipped,
        ):
            raise ValueError(
                f"suite {self.name!r} totals do not match its children and cases"
            )
        return self

    def rollup(self) -> Totals:
        """Sum of the totals of every child and case (own counts excluded)."""
        acc = Totals()
        for child in self.children:
            acc = acc + child.totals
        for case in self.cases:
            acc = acc + case.totals
        return acc

    @classmethod
    def build(
        cls,
        name: str,
        category: Category,
        *,
        children: list[SuiteResult] | None = None,
        cases: list[CaseResult] | None = None,
        duration_ms: int | None = None,
        metrics: dict[str, float] | None = None,
        severity_counts: dict[str, int] | None = None,
    ) -> SuiteResult:
        """Construct a node whose totals are rolled up from its contents.

        ``duration_ms`` overrides the rolled-up duration when the source
        reports a wall-clock time for the whole node.
        """
        children = children or []
        cases = cases or []
        acc = Totals()
        for child in children:
            acc = acc + child.totals
        for case in cases:
            acc = acc + case.totals
        if duration_ms is not None:
            acc = acc.model_copy(update={"duration_ms": max(0, duration_ms)})
        return cls(
            name=name,
            category=category,
            totals=acc,
            children=children,
            cases=cases,
            metrics=metrics or {},
            severity_counts=severity_counts or {},
        )

    def walk(self):
        """Yield this node and every descendant, depth-first."""
        yield self
        for child in self.children:
            yield from child.walk()
