"""Tests for the Rich terminal renderer."""

from __future__ import annotations

import io
from datetime import datetime, timezone
from pathlib import Path

import pytest
from rich.console import Console
from rich.panel import Panel

from qaforge.core.aggregator import Aggregator
from qaforge.core.history_store import analyze_trend
from qaforge.core.metrics import derive_metrics
from qaforge.core.orchestrator import RunOutcome
from qaforge.core.status_monitor import StatusMonitor
from qaforge.models.artifacts import PathTags
from qaforge.models.diagnostics import Diagnostic, DiagnosticKind
from qaforge.models.results import Category, SuiteResult, Totals
from qaforge.monitor.renderer import RunRenderer, styled

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def _console() -> Console:
    return Console(file=io.StringIO(), width=140, record=True, color_system=None)


def _outcome(errors: int = 0) -> RunOutcome:
    agg = Aggregator()
    agg.add(SuiteResult(name="checkout", category=Category.UI,
                        totals=Totals.reconciled(passed=9, failed=1)),
            PathTags(environment="staging", browser="firefox"))
    agg.add_diagnostics(
        Diagnostic(kind=DiagnosticKind.PARSE_ERROR, message=f"bad file {i}", path=f"f{i:02}.json")
        for i in range(errors)
    )
    snapshot = agg.snapshot(NOW)
    return RunOutcome(
        snapshot=snapshot,
        quality=derive_metrics(snapshot),
        trend=analyze_trend([]),
        history=[],
    )


class TestStyled:
    def test_known_status(self):
        assert styled("passed").plain == "PASSED"
        assert str(styled("passed").style) == "bold green"
        assert str(styled("Failed").style) == "bold red"

    def test_unknown_status_dimmed(self):
        text = styled("queued")
        assert (text.plain, str(text.style)) == ("QUEUED", "dim")

    @pytest.mark.parametrize("value", ["[evil]", "[EVIL]", "[bold]x[/bold]"])
    def test_markup_rendered_literally(self, value: str):
        console = _console()
        console.print(styled(value))
        assert console.export_text().strip() == value.upper()

    def test_suite_status_markup_in_status_panel(self, tmp_dir: Path):
        monitor = StatusMonitor(tmp_dir / "status.json")
        monitor.init()
        monitor.update("ui", "[EVIL]")
        console = _console()
        RunRenderer(console=console).print_status(monitor)
        assert "[EVIL]" in console.export_text()


class TestRenderOutcome:
    def test_returns_panel(self):
        assert isinstance(RunRenderer(console=_console()).render_outcome(_outcome()), Panel)

    def test_content(self):
        console = _console()
        RunRenderer(console=console).print_outcome(_outcome())
        text = console.export_text()
        assert "QA Results" in text
        assert "staging" in text
        assert "passRate" in text
        assert "Pass rate: 90.0%" in text
        assert "Trend: insufficient data" in text

    def test_diagnostics_truncated(self):
        console = _console()
        RunRenderer(console=console).print_outcome(_outcome(errors=12))
        text = console.export_text()
        assert "parse_error: bad file 0" in text
        assert "parse_error: bad file 11" not in text
        assert "... and 2 more" in text


class TestRenderStatus:
    @pytest.fixture
    def monitor(self, tmp_dir: Path, clock) -> StatusMonitor:
        monitor = StatusMonitor(tmp_dir / "status.json", clock=clock)
        monitor.init()
        monitor.update("ui", "passed")
        monitor.update("api", "failed")
        monitor.error("gateway timeout", suite="api")
        return monitor

    def test_print_status(self, monitor: StatusMonitor):
        console = _console()
        RunRenderer(console=console).print_status(monitor)
        text = console.export_text()
        assert "Test Status" in text
        assert "ui" in text and "api" in text
        assert "Suites: 1/2 passed" in text
        assert "[api] gateway timeout" in text
        assert "2026-01-15 12:00:00 UTC" in text

    def test_render_status_panel(self, monitor: StatusMonitor):
        panel = RunRenderer(console=_console()).render_status(monitor.read(), monitor.summary())
        assert isinstance(panel, Panel)
