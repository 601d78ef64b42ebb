"""``qaforge run`` — launch the configured test tools, then aggregate.

The status file is initialized first and updated as each tool starts and
finishes.  Exit code 1 when any tool failed or any aggregated test failed.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from qaforge.cli.commands.aggregate import load_pipeline_config, report_outcome, with_roots
from qaforge.config import ProdConfig
from qaforge.core.orchestrator import FATAL_ERRORS, Orchestrator
from qaforge.core.status_monitor import StatusMonitor
from qaforge.core.tool_runner import ToolOutcome, ToolRunner
from qaforge.models.config import ConfigError

console = Console()


def _tool_table(outcomes: list[ToolOutcome]) -> Table:
    table = Table(title="Test Tools", show_header=True, header_style="bold cyan")
    table.add_column("Tool", style="cyan")
    table.add_column("Exit", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Result", justify="center")
    for outcome in outcomes:
        result = "[green]PASS[/green]" if outcome.succeeded else "[red]FAIL[/red]"
        code = "-" if outcome.returncode is None else str(outcome.returncode)
        table.add_row(escape(outcome.name), code, f"{outcome.duration_seconds:.1f}s", result)
    return table


def run_cmd(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Pipeline configuration file (.toml or .json).",
    ),
    tools: Optional[List[str]] = typer.Option(
        None,
        "--tool",
        "-t",
        help="Run only the named tool (repeatable).",
    ),
    results_dir: Optional[Path] = typer.Option(
        None,
        "--results-dir",
        "-r",
        help="Root of the test artifact tree (default: test-results).",
    ),
    reports_dir: Optional[Path] = typer.Option(
        None,
        "--reports-dir",
        "-o",
        help="Output root for the report families (default: reports).",
    ),
    status_file: Optional[Path] = typer.Option(
        None,
        "--status-file",
        "-s",
        help="Status file to maintain (default: test-status.json).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Skip the terminal summary.",
    ),
) -> None:
    """Run every enabled tool in order, then aggregate their artifacts."""
    settings = ProdConfig()
    try:
        pipeline = load_pipeline_config(config_file, settings)
    except ConfigError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    monitor = StatusMonitor(status_file or settings.status_file)
    runner = ToolRunner(pipeline.tools, monitor=monitor, env=settings.engine_environment())
    try:
        runner.select(tools)
    except ValueError as exc:
        console.print(f"[bold red]{escape(str(exc))}[/bold red]")
        raise typer.Exit(code=1)

    monitor.init()
    outcomes = runner.run_all(tools)
    if outcomes and not quiet:
        console.print(_tool_table(outcomes))

    orchestrator = Orchestrator(
        pipeline,
        prod_config=with_roots(settings, results_dir, reports_dir),
        status_monitor=monitor,
    )
    try:
        outcome = orchestrator.run()
    except FATAL_ERRORS as exc:
        console.print(f"[bold red]Aggregation failed:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    report_outcome(outcome, quiet)
    failed_tools = [o.name for o in outcomes if not o.succeeded]
    failed = outcome.any_failed or bool(failed_tools)
    monitor.finish("failed" if failed else "passed")
    if failed_tools:
        console.print(f"[bold red]Failed tools:[/bold red] {escape(', '.join(failed_tools))}")
    if failed:
        raise typer.Exit(code=1)
