"""Typed view models shared by the report renderers.

Renderers never read the snapshot directly; they receive these rows, so
formatting decisions (pass rate rounding, duration units, labels) are
made once.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from qaforge.core.metrics import pass_rate
from qaforge.models.artifacts import MediaFile, MediaKind
from qaforge.models.history import HistoryEntry, TrendAnalysis
from qaforge.models.quality import QualityReport
from qaforge.models.results import Totals
from qaforge.models.snapshot import AggregateSnapshot


class ReportBundle(BaseModel):
    """Everything one emission needs, with a single ``generated_at``."""

    model_config = ConfigDict(frozen=True)

    snapshot: AggregateSnapshot
    quality: QualityReport
    history: list[HistoryEntry] = []
    trend: TrendAnalysis
    generated_at: datetime


class BreakdownRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str
    total: int
    passed: int
    failed: int
    skipped: int
    pass_rate: float
    duration_seconds: float
    group: str = ""  # category name for the dashboard filter; empty rows are never filtered

    def cells(self) -> list[object]:
        return [
            self.label,
            self.total,
            self.passed,
            self.failed,
            self.skipped,
            f"{self.pass_rate:.1f}%",
            f"{self.duration_seconds:.1f}s",
        ]


BREAKDOWN_HEADERS = ["Name", "Total", "Passed", "Failed", "Skipped", "Pass rate", "Duration"]


class MediaItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    kind: MediaKind
    href: str
    label: str
    test_name: str
    environment: str
    browser: str


def row(label: str, totals: Totals, group: str = "") -> BreakdownRow:
    return BreakdownRow(
        label=label,
        total=totals.total,
        passed=totals.passed,
        failed=totals.failed,
        skipped=totals.skipped,
        pass_rate=pass_rate(totals),
        duration_seconds=round(totals.duration_ms / 1000.0, 3),
        group=group,
    )


def environment_rows(snapshot: AggregateSnapshot) -> list[BreakdownRow]:
    return [row(name, entry.totals) for name, entry in snapshot.by_environment.items()]


def browser_rows(snapshot: AggregateSnapshot) -> list[BreakdownRow]:
    return [row(name, entry.totals) for name, entry in snapshot.by_browser.items()]


def suite_rows(snapshot: AggregateSnapshot) -> list[BreakdownRow]:
    return [
        row(name, entry.totals, group=entry.category.value)
        for name, entry in snapshot.by_suite.items()
    ]


def category_rows(snapshot: AggregateSnapshot) -> list[BreakdownRow]:
    return [row(name, entry.totals, group=name) for name, entry in snapshot.by_category.items()]


def matrix_rows(snapshot: AggregateSnapshot) -> list[BreakdownRow]:
    """Environment x browser cells."""
    rows = []
    for env, entry in snapshot.by_environment.items():
        for browser, totals in entry.browsers.items():
            rows.append(row(f"{env} / {browser}", totals))
    return rows


def media_items(snapshot: AggregateSnapshot, relative_to: Path) -> list[MediaItem]:
    """Media table with links relative to the directory of the rendering page."""
    return [
        MediaItem(
            index=index,
            kind=media.kind,
            href=_href(media, relative_to),
            label=media.relative_path,
            test_name=media.test_name,
            environment=media.environment,
            browser=media.browser,
        )
        for index, media in enumerate(snapshot.media)
    ]


def _href(media: MediaFile, relative_to: Path) -> str:
    try:
        rel = os.path.relpath(os.path.abspath(media.path), os.path.abspath(relative_to))
    except ValueError:
        rel = os.path.abspath(media.path)
    return Path(rel).as_posix()
