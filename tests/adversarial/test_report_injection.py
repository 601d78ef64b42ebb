"""Adversarial tests — markup injection through artifact-derived strings.

Suite titles, directory names, media file names and diagnostic messages
all come from untrusted input.  These tests verify that none of them can
break out of the HTML pages, the embedded dashboard JSON, the JUnit XML or
the Rich terminal output.
"""

from __future__ import annotations

import html
import io
import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from rich.console import Console

from qaforge.core.status_monitor import StatusMonitor
from qaforge.monitor.renderer import RunRenderer

IMG = "<img src=x onerror=alert(1)>"
SCRIPT = '<script>alert("xss")</script>'
QUOTE = 'q" onmouseover="alert(1)'
CLOSE = "</script><script>alert(2)</script>"

HTML_PAGES = (
    "test-report.html",
    "executive-summary.html",
    "dashboard/index.html",
    "comprehensive/index.html",
)


@pytest.fixture
def hostile_tree(write_json, results_root: Path) -> Path:
    write_json(f"staging/{IMG}/results.json", {"stats": {"total": 2, "passed": 1, "failed": 1}})
    write_json("staging/chromium/results.json", {
        "suites": [{"title": SCRIPT, "specs": [
            {"title": CLOSE, "tests": [{"results": [{"status": "failed"}]}]},
        ]}],
    })
    broken = results_root / QUOTE / "results.json"
    broken.parent.mkdir(parents=True)
    broken.write_text("{not json", encoding="utf-8")
    shot = results_root / "staging" / "chromium" / f"{IMG}.png"
    shot.write_bytes(b"\x89PNG")
    return results_root


@pytest.fixture
def reports(hostile_tree, make_orchestrator, report_root: Path) -> Path:
    make_orchestrator().run()
    return report_root


class TestHtmlPages:
    @pytest.mark.parametrize("page", HTML_PAGES)
    def test_no_raw_payloads(self, reports: Path, page: str):
        text = (reports / page).read_text(encoding="utf-8")
        for payload in (IMG, SCRIPT, CLOSE):
            assert payload not in text
        assert 'onmouseover="alert(1)"' not in text

    def test_suite_titles_escaped_in_test_report(self, reports: Path):
        text = (reports / "test-report.html").read_text(encoding="utf-8")
        assert html.escape(SCRIPT, quote=True) in text
        assert html.escape(f"staging/{IMG}/results.json", quote=True) in text

    def test_diagnostic_escaped(self, reports: Path):
        text = (reports / "test-report.html").read_text(encoding="utf-8")
        assert html.escape(QUOTE, quote=True) in text

    def test_dashboard_script_cannot_be_closed(self, reports: Path):
        text = (reports / "dashboard" / "index.html").read_text(encoding="utf-8")
        start = text.index('<script id="dashboard-data" type="application/json">')
        body = text[start:].split(">", 1)[1].split("</script>", 1)[0]
        data = json.loads(body)
        assert SCRIPT in data["suites"]

    def test_dashboard_data_file_keeps_raw_names(self, reports: Path):
        data = json.loads((reports / "dashboard" / "data" / "dashboard-data.json").read_text(encoding="utf-8"))
        assert f"staging/{IMG}/results.json" in data["suites"]
        assert data["media"][0]["testName"] == IMG


class TestJunit:
    def test_names_round_trip(self, reports: Path):
        root = ET.fromstring((reports / "junit-results.xml").read_bytes())
        names = {suite.get("name") for suite in root.iter("testsuite")}
        assert SCRIPT in names
        assert f"staging/{IMG}/results.json" in names

    def test_control_characters_stripped(self, write_json, make_orchestrator, report_root: Path):
        write_json("results.json", {"suites": [{"title": "bell\x07and\x1bescape",
                                                "tests": [{"status": "passed"}]}]})
        make_orchestrator().run()
        root = ET.fromstring((report_root / "junit-results.xml").read_bytes())
        assert [s.get("name") for s in root.iter("testsuite")] == ["bellandescape"]


class TestTerminal:
    def test_rich_markup_in_suite_names(self, tmp_dir: Path, clock):
        monitor = StatusMonitor(tmp_dir / "status.json", clock=clock)
        monitor.init()
        monitor.update("[red]x[/red]", "passed")
        monitor.error("[bold]boom[/bold]", suite="[blink]s")
        console = Console(file=io.StringIO(), width=140, record=True, color_system=None)
        RunRenderer(console=console).print_status(monitor)
        text = console.export_text()
        assert "[red]x[/red]" in text
        assert "[[blink]s] [bold]boom[/bold]" in text
