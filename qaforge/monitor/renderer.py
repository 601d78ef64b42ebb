"""Rich terminal renderer for run summaries and the status monitor.

Color scheme
------------
- green     : passed / good / pass
- yellow    : running / warning
- red       : failed / critical / fail
- dim       : unknown or not yet reported
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from qaforge.core.clock import iso_utc

if TYPE_CHECKING:
    from qaforge.core.orchestrator import RunOutcome
    from qaforge.core.status_monitor import StatusMonitor
    from qaforge.models.status import StatusRecord, StatusSummary


# ---------------------------------------------------------------------------
# Status -> Rich style mapping
# ---------------------------------------------------------------------------

_STATUS_STYLES: dict[str, str] = {
    "passed": "bold green",
    "completed": "bold green",
    "good": "bold green",
    "pass": "bold green",
    "excellent": "bold green",
    "running": "bold yellow",
    "warning": "bold yellow",
    "failed": "bold red",
    "critical": "bold red",
    "fail": "bold red",
    "error": "bold red",
}


def styled(value: str) -> Text:
    style = _STATUS_STYLES.get(value.lower(), "dim")
    return Text(value.upper(), style=style)


def _fields(pairs: list[tuple[str, str | Text]]) -> Text:
    """Join labelled values into one ``Label: value  |  ...`` line."""
    line = Text()
    for index, (label, value) in enumerate(pairs):
        if index:
            line.append("  |  ")
        line.append(f"{label}: ", style="bold")
        line.append(value)
    return line


class RunRenderer:
    """Renders run outcomes and status files as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Aggregation run
    # ------------------------------------------------------------------

    def render_outcome(self, outcome: RunOutcome) -> Panel:
        snapshot, quality = outcome.snapshot, outcome.quality

        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Environment", min_width=14)
        table.add_column("Total", justify="right")
        table.add_column("Passed", justify="right", style="green")
        table.add_column("Failed", justify="right", style="red")
        table.add_column("Skipped", justify="right", style="dim")
        for env, entry in snapshot.by_environment.items():
            t = entry.totals
            table.add_row(escape(env), str(t.total), str(t.passed), str(t.failed), str(t.skipped))
        t = snapshot.totals
        table.add_row("[bold]all[/bold]", str(t.total), str(t.passed), str(t.failed), str(t.skipped))

        gates = Table(show_header=True, header_style="bold cyan", expand=True)
        gates.add_column("Gate")
        gates.add_column("Actual", justify="right")
        gates.add_column("Threshold", justify="right")
        gates.add_column("Verdict", justify="center")
        for gate in quality.gates:
            gates.add_row(escape(gate.name), f"{gate.actual:g}", f"{gate.threshold:g}", styled(gate.verdict.value))

        score = "n/a" if quality.quality_score is None else f"{quality.quality_score:g}"
        summary = _fields(
            [
                ("Pass rate", f"{quality.pass_rate:.1f}%"),
                ("Quality", score),
                ("Health", styled(quality.overall_health.value)),
                ("Trend", outcome.trend.direction.value.replace("_", " ")),
                ("Artifacts", str(snapshot.artifact_count)),
                ("Diagnostics", str(len(snapshot.errors))),
            ]
        )
        parts = [table, Text(""), gates, Text(""), summary]
        if snapshot.errors:
            parts.append(Text(""))
            for diagnostic in snapshot.errors[:10]:
                parts.append(Text(str(diagnostic), style="yellow"))
            if len(snapshot.errors) > 10:
                parts.append(Text(f"... and {len(snapshot.errors) - 10} more", style="dim"))

        return Panel(
            Group(*parts),
            title="[bold]QA Results[/bold]",
            subtitle=f"Generated: {iso_utc(snapshot.timestamp)}",
            border_style="blue",
            padding=(1, 2),
        )

    def print_outcome(self, outcome: RunOutcome) -> None:
        self.console.print(self.render_outcome(outcome))

    # ------------------------------------------------------------------
    # Status monitor
    # ------------------------------------------------------------------

    def render_status(self, record: StatusRecord, summary: StatusSummary) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Suite", min_width=20)
        table.add_column("Status", justify="center", min_width=12)
        table.add_column("Updated", style="dim")
        for name, suite in sorted(record.suites.items()):
            table.add_row(escape(name), styled(suite.status), suite.last_update.strftime("%H:%M:%S"))

        footer = _fields(
            [
                ("Overall", styled(summary.overall.value)),
                ("Suites", f"{summary.passed_suites}/{summary.total_suites} passed"),
                ("Errors", str(summary.errors)),
                ("Warnings", str(summary.warnings)),
                ("Duration", f"{summary.duration_seconds:.1f}s"),
            ]
        )
        parts = [table, Text(""), footer]
        for error in record.errors[-5:]:
            where = f"[{error.suite}] " if error.suite else ""
            parts.append(Text(f"{where}{error.error}", style="red"))
        return Panel(
            Group(*parts),
            title="[bold]Test Status[/bold]",
            subtitle=f"Last updated: {record.last_update.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            border_style="blue",
            padding=(1, 2),
        )

    def print_status(self, monitor: StatusMonitor) -> None:
        self.console.print(self.render_status(monitor.read(), monitor.summary()))

    def render_live(self, monitor: StatusMonitor, *, refresh_hz: float = 2.0) -> None:
        """Continuously re-read and render the status file.  Ctrl+C to stop."""
        interval = 1.0 / max(refresh_hz, 0.1)
        with Live(console=self.console, refresh_per_second=refresh_hz, transient=False) as live:
            try:
                while True:
                    live.update(self.render_status(monitor.read(), monitor.summary()))
                    time.sleep(interval)
            except KeyboardInterrupt:
                live.update(self.render_status(monitor.read(), monitor.summary()))
