"""External test-engine launcher used by ``qaforge run``.

Each configured tool is a command line.  Tools run one after another with
the shared engine variables (BASE_URL, API_BASE_URL, TEST_ENV, CI) in
their environment; the status monitor is updated before and after each.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from qaforge.core.status_monitor import StatusMonitor
from qaforge.models.config import ToolSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutcome:
    name: str
    returncode: int | None
    duration_seconds: float
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.returncode == 0


class ToolRunner:
    """Runs configured tools sequentially.

    Parameters
    ----------
    tools:
        Tool specifications, in execution order.
    monitor:
        Status monitor to keep current; optional.
    env:
        Extra environment variables for every tool.
    cwd:
        Working directory for every tool.
    """

    def __init__(
        self,
        tools: Sequence[ToolSpec],
        monitor: StatusMonitor | None = None,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.tools = list(tools)
        self.monitor = monitor
        self.env = dict(env or {})
        self.cwd = cwd

    def select(self, names: Sequence[str] | None = None) -> list[ToolSpec]:
        """Enabled tools, optionally restricted to *names*."""
        chosen = [t for t in self.tools if t.enabled]
        if names:
            wanted = set(names)
            unknown = wanted - {t.name for t in self.tools}
            if unknown:
                raise ValueError(f"Unknown tool(s): {', '.join(sorted(unknown))}")
            chosen = [t for t in self.tools if t.name in wanted]
        return chosen

    def run_all(self, names: Sequence[str] | None = None) -> list[ToolOutcome]:
        return [self.run_tool(spec) for spec in self.select(names)]

    def run_tool(self, spec: ToolSpec) -> ToolOutcome:
        if self.monitor is not None:
            self.monitor.update(spec.name, "running")
        logger.info("Running %s: %s", spec.name, " ".join(spec.command))
        start = time.monotonic()
        returncode: int | None = None
        error: str | None = None
        try:
            completed = subprocess.run(
                spec.command,
                env={**os.environ, **self.env},
                cwd=self.cwd,
                timeout=spec.timeout_seconds,
                check=False,
            )
            returncode = completed.returncode
        except subprocess.TimeoutExpired:
            error = f"{spec.name} timed out after {spec.timeout_seconds:g}s"
        except (subprocess.SubprocessError, OSError) as exc:
            error = f"{spec.name} could not be started: {exc}"
        duration = round(time.monotonic() - start, 3)

        outcome = ToolOutcome(name=spec.name, returncode=returncode,
                              duration_seconds=duration, error=error)
        if error:
            logger.error("%s", error)
        elif returncode:
            logger.warning("%s exited with code %d", spec.name, returncode)
        if self.monitor is not None:
            details = {"duration": duration}
            if returncode is not None:
                details["exitCode"] = returncode
            self.monitor.update(spec.name, "passed" if outcome.succeeded else "failed", details)
            if error:
                self.monitor.error(error, suite=spec.name)
        return outcome
