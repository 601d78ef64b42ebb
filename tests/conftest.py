"""Shared test fixtures for qaforge."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from qaforge.config import ProdConfig
from qaforge.core.clock import Clock, fixed_clock
from qaforge.core.orchestrator import Orchestrator
from qaforge.models.artifacts import Artifact, ArtifactOrigin
from qaforge.models.config import PipelineConfig

FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
FIXED_CLOCK_SPEC = "fixed:2026-01-15T12:00:00Z"


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def clock() -> Clock:
    """A clock frozen at FIXED_NOW."""
    return fixed_clock(FIXED_NOW)


@pytest.fixture
def results_root(tmp_dir: Path) -> Path:
    """Location of the artifact tree (not created until something is written)."""
    return tmp_dir / "test-results"


@pytest.fixture
def report_root(tmp_dir: Path) -> Path:
    return tmp_dir / "reports"


@pytest.fixture
def write_json(results_root: Path) -> Callable[[str, Any], Path]:
    """Write a JSON document under the results root; returns its path."""

    def _write(relative: str, data: Any) -> Path:
        path = results_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_artifact(tmp_dir: Path) -> Callable[..., Artifact]:
    """Build an Artifact record without touching the filesystem."""

    def _make(
        relative: str = "results.json",
        origin: ArtifactOrigin = ArtifactOrigin.BROWSER_AUTOMATION,
        environment: str = "unknown",
        browser: str = "unknown",
    ) -> Artifact:
        return Artifact(
            path=tmp_dir / relative,
            relative_path=relative,
            origin=origin,
            environment=environment,
            browser=browser,
        )

    return _make


@pytest.fixture
def pipeline_config(results_root: Path, report_root: Path) -> PipelineConfig:
    """Default pipeline config pointed at the temp roots with a fixed clock."""
    return PipelineConfig(
        results_root=results_root,
        report_root=report_root,
        clock=FIXED_CLOCK_SPEC,
    )


@pytest.fixture
def prod_config() -> ProdConfig:
    """Process settings isolated from the ambient environment and .env file."""
    return ProdConfig(
        _env_file=None,
        base_url="http://app.test",
        api_base_url="http://app.test/api",
        test_env="staging",
        ci=False,
    )


@pytest.fixture
def make_orchestrator(
    pipeline_config: PipelineConfig, prod_config: ProdConfig
) -> Callable[..., Orchestrator]:
    """Build an Orchestrator over the temp roots; keyword args update the config."""

    def _make(**overrides: Any) -> Orchestrator:
        config = pipeline_config.model_copy(update=overrides) if overrides else pipeline_config
        return Orchestrator(config, prod_config=prod_config)

    return _make


@pytest.fixture
def tool_command() -> Callable[..., list[str]]:
    """Command line of a fake test engine that writes a stats-only report."""

    def _command(target: Path, passed: int = 0, failed: int = 0, skipped: int = 0) -> list[str]:
        doc = {
            "stats": {
                "total": passed + failed + skipped,
                "passed": passed,
                "failed": failed,
                "skipped": skipped,
                "duration": 100,
            }
        }
        script = (
            "import pathlib; "
            f"p = pathlib.Path({str(target)!r}); "
            "p.parent.mkdir(parents=True, exist_ok=True); "
            f"p.write_text({json.dumps(doc)!r})"
        )
        return [sys.executable, "-c", script]

    return _command


@pytest.fixture
def config_file(tmp_dir: Path, results_root: Path, report_root: Path) -> Callable[..., Path]:
    """Write a JSON pipeline config pointed at the temp roots."""

    def _write(**extra: Any) -> Path:
        data = {
            "results_root": str(results_root),
            "report_root": str(report_root),
            "clock": FIXED_CLOCK_SPEC,
            "tools": [],
            **extra,
        }
        path = tmp_dir / "pipeline.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write
