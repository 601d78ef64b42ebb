"""Pipeline orchestrator — the central coordinator for an aggregation run.

The Orchestrator wires together the ArtifactLocator, the adapters, the
Aggregator, metric derivation, the HistoryStore and the ReportEmitter into
one run:

    ensure_directories -> lock history -> load history -> discover + ingest
        -> snapshot -> derive metrics -> append/trim history -> trend
        -> emit reports -> save history

Each artifact is ingested in a short-lived worker thread bounded by the
per-file budget.  Cancellation and the global run budget are checked
between artifacts; either one discards the partial snapshot.
"""

from __future__ import annotations

import logging
import os
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from qaforge.adapters import AdapterOutcome, DocumentLoadError, load_document, select_adapter
from qaforge.config import ProdConfig
from qaforge.core.aggregator import Aggregator
from qaforge.core.clock import Clock, clock_from_spec, iso_utc
from qaforge.core.hasher import content_digest
from qaforge.core.history_store import HistoryLockError, HistoryStore, analyze_trend
from qaforge.core.locator import ArtifactLocator
from qaforge.core.metrics import derive_metrics, pass_rate
from qaforge.core.status_monitor import StatusMonitor
from qaforge.emitters import HISTORY_FILE_NAME, ReportBundle, ReportEmissionError, ReportEmitter
from qaforge.emitters.normalized import normalized_payload
from qaforge.models.artifacts import Artifact, MediaFile
from qaforge.models.config import PipelineConfig
from qaforge.models.diagnostics import Diagnostic, DiagnosticKind, DiagnosticLog
from qaforge.models.history import HistoryEntry, TrendAnalysis
from qaforge.models.quality import QualityReport
from qaforge.models.snapshot import AggregateSnapshot

logger = logging.getLogger(__name__)

AGGREGATION_SUITE = "aggregation"

_CI_VARIABLES = (
    "GITHUB_SHA",
    "GITHUB_REF",
    "GITHUB_RUN_ID",
    "GITHUB_RUN_NUMBER",
    "GITHUB_WORKFLOW",
    "GITHUB_ACTOR",
)


class RunCancelledError(RuntimeError):
    """Raised when a run is cancelled before completion."""


class RunBudgetExceededError(RuntimeError):
    """Raised when a run exceeds its global wall-clock budget."""


# Errors that abort a run without writing reports.
FATAL_ERRORS = (HistoryLockError, ReportEmissionError, RunCancelledError, RunBudgetExceededError)


@dataclass(frozen=True)
class RunOutcome:
    """What a completed run produced."""

    snapshot: AggregateSnapshot
    quality: QualityReport
    trend: TrendAnalysis
    history: list[HistoryEntry]
    outputs: dict[str, Path] = field(default_factory=dict)
    history_saved: bool = True

    @property
    def any_failed(self) -> bool:
        return self.snapshot.totals.failed > 0


class Orchestrator:
    """Runs discovery, aggregation and reporting for one results root.

    Parameters
    ----------
    config:
        Pipeline configuration.  Uses defaults if not provided.
    prod_config:
        Process settings; its results/report roots override the config's.
    clock:
        Time source for every timestamp of the run.
    cancel_event:
        Set from another thread to stop dispatching artifacts.
    status_monitor:
        Optional status file to keep current while the run progresses.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        prod_config: ProdConfig | None = None,
        clock: Clock | None = None,
        cancel_event: threading.Event | None = None,
        status_monitor: StatusMonitor | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self._prod_config = prod_config or ProdConfig()
        self.clock = clock or clock_from_spec(self.config.clock)
        self.cancel_event = cancel_event or threading.Event()
        self.status_monitor = status_monitor

        self.results_root = Path(self._prod_config.results_root or self.config.results_root)
        self.report_root = Path(self._prod_config.report_root or self.config.report_root)
        history_path = self.config.history_path or self.report_root / "metrics" / HISTORY_FILE_NAME

        self.emitter = ReportEmitter(self.report_root)
        self.history = HistoryStore(
            history_path,
            max_len=self.config.history_max_len,
            lock_timeout=self.config.history_lock_timeout_seconds,
            lock_path=self.report_root / ".history.lock",
        )

        ts = self.clock().strftime("%Y%m%d-%H%M%S")
        self.run_id = f"qa-{ts}-{uuid.uuid4().hex[:6]}"

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def ensure_directories(self) -> None:
        """Create the output root.  The only filesystem side effect before a run."""
        self.emitter.ensure_directories()

    def cancel(self) -> None:
        self.cancel_event.set()

    def run(self) -> RunOutcome:
        """Execute a complete aggregation run and write every report."""
        started = time.monotonic()
        self._mark(AGGREGATION_SUITE, "running")
        logger.info("Run %s: aggregating %s into %s", self.run_id, self.results_root, self.report_root)

        try:
            self.ensure_directories()
            with self.history.locked():
                self.history.load()
                aggregator = self.collect(started)
                aggregator.add_diagnostics(self.history.diagnostics)

                generated_at = self.clock()
                snapshot = aggregator.snapshot(generated_at, self.metadata())
                quality = derive_metrics(snapshot, self.config)

                self.history.append(self._history_entry(snapshot, quality))
                self.history.trim(self.config.history_max_len)
                entries = self.history.entries
                trend = analyze_trend(entries, self.config.trend_window)

                bundle = ReportBundle(
                    snapshot=snapshot,
                    quality=quality,
                    history=entries,
                    trend=trend,
                    generated_at=generated_at,
                )
                outputs = self.emitter.emit(bundle)
                saved = self.history.save()
        except FATAL_ERRORS as exc:
            logger.error("Run %s aborted: %s", self.run_id, exc)
            self._abort(exc)
            raise

        self._mark(
            AGGREGATION_SUITE,
            "failed" if snapshot.totals.failed else "passed",
            {
                "tests": snapshot.totals.total,
                "passed": snapshot.totals.passed,
                "failed": snapshot.totals.failed,
                "duration": round(time.monotonic() - started, 3),
            },
        )
        logger.info(
            "Run %s: %d tests, %.1f%% passed, health %s, %d diagnostics",
            self.run_id,
            snapshot.totals.total,
            quality.pass_rate,
            quality.overall_health.value,
            len(snapshot.errors),
        )
        return RunOutcome(
            snapshot=snapshot,
            quality=quality,
            trend=trend,
            history=entries,
            outputs=outputs,
            history_saved=saved,
        )

    # ------------------------------------------------------------------
    # Discovery and ingestion
    # ------------------------------------------------------------------

    def collect(self, started: float | None = None) -> Aggregator:
        """Discover and ingest every artifact under the results root."""
        started = time.monotonic() if started is None else started
        diagnostics = DiagnosticLog()
        aggregator = Aggregator(self.config.counted_categories)
        locator = ArtifactLocator(self.results_root, diagnostics)
        for item in locator.scan():
            self._check_interrupts(started)
            if isinstance(item, MediaFile):
                aggregator.add_media(item)
                continue
            outcome = self.ingest_with_timeout(item)
            aggregator.add_diagnostics(outcome.diagnostics)
            if outcome.result is not None:
                aggregator.add(outcome.result, item.tags)
        aggregator.add_diagnostics(diagnostics.items())
        return aggregator

    def ingest_with_timeout(self, artifact: Artifact) -> AdapterOutcome:
        """Ingest one artifact in a worker bounded by the per-file budget."""
        budget = self.config.adapter_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="qaforge-adapter")
        future = executor.submit(ingest, artifact)
        try:
            return future.result(timeout=budget)
        except FuturesTimeoutError:
            logger.warning("Adapter timed out after %ss on %s", budget, artifact.relative_path)
            return AdapterOutcome(
                result=None,
                diagnostics=[
                    Diagnostic(
                        kind=DiagnosticKind.ADAPTER_TIMEOUT,
                        message=f"adapter exceeded {budget:g}s on {artifact.relative_path}",
                        path=artifact.relative_path,
                    )
                ],
            )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _check_interrupts(self, started: float) -> None:
        if self.cancel_event.is_set():
            raise RunCancelledError(f"Run {self.run_id} cancelled")
        budget = self.config.run_budget_seconds
        if budget is not None and time.monotonic() - started > budget:
            raise RunBudgetExceededError(f"Run {self.run_id} exceeded its {budget:g}s budget")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def metadata(self) -> dict[str, Any]:
        prod = self._prod_config
        meta: dict[str, Any] = {
            "runId": self.run_id,
            "ci": prod.is_ci,
            "testEnv": prod.test_env,
            "baseUrl": prod.base_url,
            "apiBaseUrl": prod.api_base_url,
            "resultsRoot": self.results_root.as_posix(),
        }
        for name in _CI_VARIABLES:
            value = os.environ.get(name)
            if value:
                meta[name.lower()] = value
        return meta

    def _history_entry(self, snapshot: AggregateSnapshot, quality: QualityReport) -> HistoryEntry:
        digest = content_digest(
            {k: v for k, v in normalized_payload(snapshot, "").items()
             if k not in ("generatedAt", "metadata")}
        )
        totals = snapshot.totals
        return HistoryEntry(
            timestamp=snapshot.timestamp,
            total=totals.total,
            passed=totals.passed,
            failed=totals.failed,
            skipped=totals.skipped,
            pass_rate=pass_rate(totals),
            metadata={
                "runId": self.run_id,
                "testEnv": self._prod_config.test_env,
                "ci": self._prod_config.is_ci,
                "qualityScore": quality.quality_score,
                "overallHealth": quality.overall_health.value,
                "snapshotDigest": digest,
                "generatedAt": iso_utc(snapshot.timestamp),
            },
        )

    def _mark(self, suite: str, status: str, details: dict[str, Any] | None = None) -> None:
        if self.status_monitor is not None:
            self.status_monitor.update(suite, status, details)

    def _abort(self, exc: Exception) -> None:
        """Leave the status file failed, with the reason recorded."""
        if self.status_monitor is None:
            return
        self._mark(AGGREGATION_SUITE, "failed")
        self.status_monitor.error(str(exc), suite=AGGREGATION_SUITE)
        self.status_monitor.finish("failed")


def ingest(artifact: Artifact) -> AdapterOutcome:
    """Load, detect and parse one artifact.  Never raises for bad input."""
    rel = artifact.relative_path
    try:
        document = load_document(artifact.path)
    except OSError as exc:
        return AdapterOutcome(
            result=None,
            diagnostics=[Diagnostic(kind=DiagnosticKind.DISCOVERY_ERROR,
                                    message=f"cannot read {rel}: {exc.strerror or exc}", path=rel)],
        )
    except DocumentLoadError as exc:
        return AdapterOutcome(
            result=None,
            diagnostics=[Diagnostic(kind=DiagnosticKind.PARSE_ERROR, message=f"{exc} in {rel}", path=rel)],
        )
    try:
        adapter = select_adapter(artifact, document)
    except Exception as exc:
        logger.warning("Adapter detection failed on %s: %s", rel, exc)
        adapter = None
    if adapter is None:
        logger.warning("No adapter recognizes %s", rel)
        return AdapterOutcome(
            result=None,
            diagnostics=[Diagnostic(kind=DiagnosticKind.PARSE_ERROR,
                                    message=f"unrecognized shape in {rel}", path=rel)],
        )
    return adapter.run(artifact, document)
