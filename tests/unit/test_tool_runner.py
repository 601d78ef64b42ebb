"""Tests for ToolRunner — launching external test engines."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from qaforge.core.status_monitor import StatusMonitor
from qaforge.core.tool_runner import ToolOutcome, ToolRunner
from qaforge.models.config import ToolSpec


def _python(name: str, code: str, **kwargs) -> ToolSpec:
    return ToolSpec(name=name, command=[sys.executable, "-c", code], **kwargs)


@pytest.fixture
def monitor(tmp_dir: Path, clock) -> StatusMonitor:
    monitor = StatusMonitor(tmp_dir / "status.json", clock=clock)
    monitor.init()
    return monitor


class TestToolOutcome:
    def test_succeeded(self):
        assert ToolOutcome(name="t", returncode=0, duration_seconds=1.0).succeeded
        assert not ToolOutcome(name="t", returncode=2, duration_seconds=1.0).succeeded
        assert not ToolOutcome(name="t", returncode=None, duration_seconds=1.0, error="x").succeeded


class TestSelect:
    tools = [
        ToolSpec(name="ui", command=["ui"]),
        ToolSpec(name="api", command=["api"]),
        ToolSpec(name="perf", command=["perf"], enabled=False),
    ]

    def test_enabled_by_default(self):
        assert [t.name for t in ToolRunner(self.tools).select()] == ["ui", "api"]

    def test_named_selection_keeps_config_order(self):
        assert [t.name for t in ToolRunner(self.tools).select(["api", "ui"])] == ["ui", "api"]

    def test_named_selection_includes_disabled(self):
        assert [t.name for t in ToolRunner(self.tools).select(["perf"])] == ["perf"]

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown tool"):
            ToolRunner(self.tools).select(["ui", "ghost"])


class TestRunTool:
    def test_success(self, monitor: StatusMonitor):
        outcome = ToolRunner([], monitor=monitor).run_tool(_python("ok", "pass"))
        assert outcome.succeeded
        assert outcome.returncode == 0
        suite = monitor.read().suites["ok"]
        assert suite.status == "passed"
        assert suite.model_extra["exitCode"] == 0

    def test_nonzero_exit(self, monitor: StatusMonitor):
        outcome = ToolRunner([], monitor=monitor).run_tool(_python("bad", "raise SystemExit(4)"))
        assert not outcome.succeeded
        assert outcome.returncode == 4
        assert outcome.error is None
        assert monitor.read().suites["bad"].status == "failed"

    def test_timeout(self, monitor: StatusMonitor):
        spec = _python("slow", "import time; time.sleep(5)", timeout_seconds=0.2)
        outcome = ToolRunner([], monitor=monitor).run_tool(spec)
        assert outcome.returncode is None
        assert "timed out" in outcome.error
        record = monitor.read()
        assert record.suites["slow"].status == "failed"
        assert record.errors[0].suite == "slow"

    def test_missing_executable(self, monitor: StatusMonitor):
        spec = ToolSpec(name="ghost", command=["definitely-not-a-real-binary-qaforge"])
        outcome = ToolRunner([], monitor=monitor).run_tool(spec)
        assert not outcome.succeeded
        assert "could not be started" in outcome.error
        assert monitor.should_fail()

    def test_environment_passed_through(self, tmp_dir: Path):
        out = tmp_dir / "env.json"
        code = (
            "import json, os, pathlib; "
            f"pathlib.Path({str(out)!r}).write_text(json.dumps({{'env': os.environ['TEST_ENV']}}))"
        )
        ToolRunner([], env={"TEST_ENV": "staging"}).run_tool(_python("env", code))
        assert json.loads(out.read_text(encoding="utf-8")) == {"env": "staging"}

    def test_cwd(self, tmp_dir: Path):
        code = "import pathlib; pathlib.Path('marker.txt').write_text('x')"
        ToolRunner([], cwd=tmp_dir).run_tool(_python("cwd", code))
        assert (tmp_dir / "marker.txt").exists()

    def test_run_all_in_order(self, monitor: StatusMonitor):
        tools = [_python("first", "pass"), _python("second", "raise SystemExit(1)")]
        outcomes = ToolRunner(tools, monitor=monitor).run_all()
        assert [(o.name, o.succeeded) for o in outcomes] == [("first", True), ("second", False)]
        assert sorted(monitor.read().suites) == ["first", "second"]
