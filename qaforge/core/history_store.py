"""Bounded run history persisted as a JSON array, plus trend analysis.

Entries are kept in ascending timestamp order and trimmed from the head.
A file that cannot be decoded is reported as ``history_corrupt`` and left
untouched on disk: ``save()`` refuses to overwrite it until an operator
removes or repairs it.

Concurrent runs serialize through an advisory lock file created with
``O_CREAT | O_EXCL`` beside the history file.
"""

from __future__ import annotations

import bisect
import json
import logging
import os
import tempfile
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from qaforge.core.hasher import canonical_json_text
from qaforge.models.diagnostics import Diagnostic, DiagnosticKind
from qaforge.models.history import HistoryEntry, TrendAnalysis, TrendDirection

logger = logging.getLogger(__name__)

DEFAULT_MAX_LEN = 50
TREND_THRESHOLD = 5.0


class HistoryLockError(RuntimeError):
    """Raised when the history lock cannot be acquired in time."""


class HistoryStore:
    """File-backed, bounded history of per-run projections.

    Parameters
    ----------
    path:
        JSON file holding the history array.
    max_len:
        Maximum number of retained entries; the oldest are evicted.
    lock_timeout:
        Seconds to wait for the advisory lock before giving up.
    lock_path:
        Advisory lock file; defaults to a sibling of the history file.
    """

    def __init__(
        self,
        path: Path,
        max_len: int = DEFAULT_MAX_LEN,
        lock_timeout: float = 10.0,
        lock_path: Path | None = None,
    ) -> None:
        self.path = Path(path)
        self.max_len = max_len
        self.lock_timeout = lock_timeout
        self.lock_path = Path(lock_path) if lock_path else self.path.with_name(self.path.name + ".lock")
        self._entries: list[HistoryEntry] = []
        self._corrupt = False
        self.diagnostics: list[Diagnostic] = []

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    @property
    def is_corrupt(self) -> bool:
        return self._corrupt

    # ------------------------------------------------------------------
    # Load / mutate / save
    # ------------------------------------------------------------------

    def load(self) -> list[HistoryEntry]:
        """Read the history file; a missing file is an empty history."""
        self._entries = []
        self._corrupt = False
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("history file is not a JSON array")
            entries = [HistoryEntry.model_validate(item) for item in raw]
        except (OSError, ValueError, ValidationError) as exc:
            self._corrupt = True
            logger.warning("History file %s is corrupt and will be left untouched: %s", self.path, exc)
            self.diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.HISTORY_CORRUPT,
                    message=f"cannot decode history file: {exc}",
                    path=str(self.path),
                )
            )
            return []
        self._entries = sorted(entries, key=lambda e: e.timestamp)
        return self.entries

    def append(self, entry: HistoryEntry) -> None:
        """Insert *entry* keeping ascending timestamp order."""
        keys = [e.timestamp for e in self._entries]
        index = bisect.bisect_right(keys, entry.timestamp)
        self._entries.insert(index, entry)

    def trim(self, max_len: int | None = None) -> None:
        """Evict the oldest entries beyond *max_len*."""
        limit = self.max_len if max_len is None else max_len
        if len(self._entries) > limit:
            self._entries = self._entries[len(self._entries) - limit:]

    def save(self) -> bool:
        """Write the history atomically.  Returns ``False`` if skipped."""
        if self._corrupt:
            logger.warning("Not overwriting corrupt history file %s", self.path)
            return False
        payload = [e.model_dump(mode="json", by_alias=True) for e in self._entries]
        atomic_write_text(self.path, canonical_json_text(payload))
        logger.debug("Saved %d history entries to %s", len(self._entries), self.path)
        return True

    # ------------------------------------------------------------------
    # Advisory lock
    # ------------------------------------------------------------------

    @contextmanager
    def locked(self) -> Iterator[HistoryStore]:
        """Hold the advisory lock for the duration of the block."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                break
            except FileExistsError:
                if time.monotonic() >= deadline:
                    raise HistoryLockError(self._held_message()) from None
                time.sleep(0.05)
        try:
            os.write(fd, str(os.getpid()).encode("ascii"))
            os.close(fd)
            yield self
        finally:
            try:
                self.lock_path.unlink()
            except FileNotFoundError:
                pass

    def _held_message(self) -> str:
        # Stale locks are never stolen; the operator removes them.
        try:
            holder = self.lock_path.read_text(encoding="ascii", errors="replace").strip()
        except OSError:
            holder = ""
        owner = f" (pid {holder})" if holder else ""
        return (
            f"History lock {self.lock_path} held by another run{owner}; "
            "if no run is active, delete the lock file and retry"
        )


def atomic_write_text(path: Path, text: str) -> None:
    """Write *text* to a sibling temp file then rename it over *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# ---------------------------------------------------------------------------
# Trend analysis
# ---------------------------------------------------------------------------


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def analyze_trend(entries: Sequence[HistoryEntry], window: int = 5) -> TrendAnalysis:
    """Compare the mean pass rate of the last *window* runs to the previous *window*.

    With fewer than two entries the trend is ``insufficient_data``.  When
    there is no previous window the recent mean stands in for it.
    """
    if len(entries) < 2:
        return TrendAnalysis(direction=TrendDirection.INSUFFICIENT_DATA, total_runs=len(entries))
    rates = [e.pass_rate for e in entries]
    recent = rates[-window:]
    previous = rates[-2 * window:-window] if len(rates) > window else []
    current = round(_mean(recent), 1)
    prior = round(_mean(previous), 1) if previous else current
    delta = round(current - prior, 1)
    if delta > TREND_THRESHOLD:
        direction = TrendDirection.IMPROVING
    elif delta < -TREND_THRESHOLD:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE
    return TrendAnalysis(
        direction=direction,
        current=current,
        previous=prior,
        delta=delta,
        total_runs=len(entries),
        recent_runs=len(recent),
    )
