"""File-backed status monitor for long orchestrations.

Each operation re-reads the status file, applies one change, and rewrites
the whole record through a temp file and rename, so separate CLI
invocations can cooperate and readers never observe a torn file.  A
missing or undecodable file reads as a fresh record.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from qaforge.core.clock import Clock, system_clock
from qaforge.core.hasher import canonical_json_text
from qaforge.core.history_store import atomic_write_text
from qaforge.models.status import (
    OverallStatus,
    StatusError,
    StatusRecord,
    StatusSummary,
    StatusWarning,
    SuiteStatus,
)

logger = logging.getLogger(__name__)

_PASSING = frozenset({"passed", "completed", "success"})
_FAILING = frozenset({"failed", "error"})


class StatusMonitor:
    """Owns one status file.

    Parameters
    ----------
    path:
        Status file location (default ``test-status.json``).
    clock:
        Time source for every timestamp written.
    """

    def __init__(self, path: Path = Path("test-status.json"), clock: Clock = system_clock) -> None:
        self.path = Path(path)
        self.clock = clock

    # ------------------------------------------------------------------
    # Read / write
    # ------------------------------------------------------------------

    def read(self) -> StatusRecord:
        """Current record; a missing or partial file yields a fresh one."""
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
                return StatusRecord.model_validate(data)
            except (OSError, ValueError, ValidationError) as exc:
                logger.warning("Ignoring unreadable status file %s: %s", self.path, exc)
        now = self.clock()
        return StatusRecord(start_time=now, last_update=now)

    def _write(self, record: StatusRecord) -> StatusRecord:
        atomic_write_text(
            self.path,
            canonical_json_text(record.model_dump(mode="json", by_alias=True, exclude_none=True)),
        )
        return record

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def init(self) -> StatusRecord:
        """Start a fresh record, discarding any previous one."""
        now = self.clock()
        logger.info("Initialized status file %s", self.path)
        return self._write(StatusRecord(start_time=now, last_update=now))

    def update(self, suite: str, status: str, details: dict[str, Any] | None = None) -> StatusRecord:
        """Record the latest status of *suite*; *details* keys are kept."""
        record = self.read()
        now = self.clock()
        record.suites[suite] = SuiteStatus.model_validate(
            {**(details or {}), "status": status, "lastUpdate": now}
        )
        record.last_update = now
        logger.info("Suite %s -> %s", suite, status)
        return self._write(record)

    def error(self, message: str, suite: str | None = None, stack: str | None = None) -> StatusRecord:
        record = self.read()
        now = self.clock()
        record.errors.append(StatusError(timestamp=now, error=message, suite=suite, stack=stack))
        record.last_update = now
        logger.error("Status error%s: %s", f" [{suite}]" if suite else "", message)
        return self._write(record)

    def warning(self, message: str, suite: str | None = None) -> StatusRecord:
        record = self.read()
        now = self.clock()
        record.warnings.append(StatusWarning(timestamp=now, warning=message, suite=suite))
        record.last_update = now
        logger.warning("Status warning%s: %s", f" [{suite}]" if suite else "", message)
        return self._write(record)

    def finish(self, status: OverallStatus | str = OverallStatus.COMPLETED) -> StatusRecord:
        record = self.read()
        now = self.clock()
        record.overall = OverallStatus(status)
        record.end_time = now
        record.last_update = now
        logger.info("Run finished with status %s", record.overall.value)
        return self._write(record)

    def summary(self) -> StatusSummary:
        record = self.read()
        end = record.end_time or record.last_update
        statuses = {name: s.status for name, s in sorted(record.suites.items())}
        return StatusSummary(
            overall=record.overall,
            duration_seconds=round(max(0.0, (end - record.start_time).total_seconds()), 3),
            passed_suites=sum(1 for s in statuses.values() if s.lower() in _PASSING),
            failed_suites=sum(1 for s in statuses.values() if s.lower() in _FAILING),
            total_suites=len(statuses),
            errors=len(record.errors),
            warnings=len(record.warnings),
            suites=statuses,
        )

    def cleanup(self) -> bool:
        """Delete the status file.  Returns whether a file was removed."""
        if self.path.exists():
            self.path.unlink()
            logger.info("Removed status file %s", self.path)
            return True
        return False

    def should_fail(self) -> bool:
        """Whether a finished run must exit non-zero."""
        record = self.read()
        return record.overall is OverallStatus.FAILED or bool(record.errors)
