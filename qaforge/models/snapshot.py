"""Aggregate snapshot — the in-memory product of one aggregation run."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from qaforge.models.artifacts import MediaFile
from qaforge.models.diagnostics import Diagnostic
from qaforge.models.results import Category, Totals

_CAMEL = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class EnvironmentEntry(BaseModel):
    model_config = _CAMEL

    totals: Totals = Field(default_factory=Totals)
    browsers: dict[str, Totals] = Field(default_factory=dict)
    media: list[int] = Field(default_factory=list)  # indices into snapshot.media


class BrowserEntry(BaseModel):
    model_config = _CAMEL

    totals: Totals = Field(default_factory=Totals)
    environments: dict[str, Totals] = Field(default_factory=dict)
    media: list[int] = Field(default_factory=list)


class SuiteEntry(BaseModel):
    model_config = _CAMEL

    category: Category
    totals: Totals = Field(default_factory=Totals)
    environments: dict[str, Totals] = Field(default_factory=dict)
    browsers: dict[str, Totals] = Field(default_factory=dict)


class CategorySummary(BaseModel):
    """Everything one quality subdomain contributed to the run."""

    model_config = _CAMEL

    category: Category
    totals: Totals = Field(default_factory=Totals)
    severity_counts: dict[str, int] = Field(default_factory=dict)
    metrics: dict[str, float] = Field(default_factory=dict)
    suites: list[str] = Field(default_factory=list)


class AggregateSnapshot(BaseModel):
    """Totals and breakdowns across every ingested artifact.

    ``totals`` and the environment, browser and suite indexes only count
    the configured functional categories; ``by_category`` covers all.
    """

    model_config = _CAMEL

    timestamp: datetime
    totals: Totals = Field(default_factory=Totals)
    by_environment: dict[str, EnvironmentEntry] = Field(default_factory=dict)
    by_browser: dict[str, BrowserEntry] = Field(default_factory=dict)
    by_suite: dict[str, SuiteEntry] = Field(default_factory=dict)
    by_category: dict[str, CategorySummary] = Field(default_factory=dict)
    media: list[MediaFile] = Field(default_factory=list)
    errors: list[Diagnostic] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    artifact_count: int = 0

    def category(self, category: Category) -> CategorySummary | None:
        return self.by_category.get(category.value)
