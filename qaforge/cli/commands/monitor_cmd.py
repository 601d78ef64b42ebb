"""``qaforge monitor ...`` — maintain the status file of a long run.

Each subcommand is one read-modify-write of the status file, so separate
processes (CI steps, test tools) can report into the same record.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from qaforge.config import ProdConfig
from qaforge.core.status_monitor import StatusMonitor
from qaforge.models.status import OverallStatus
from qaforge.monitor.renderer import RunRenderer

console = Console()

monitor_app = typer.Typer(
    name="monitor",
    help="Maintain the test status file.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@monitor_app.callback()
def monitor_options(
    ctx: typer.Context,
    status_file: Optional[Path] = typer.Option(
        None,
        "--status-file",
        "-f",
        help="Status file to operate on (default: test-status.json).",
    ),
) -> None:
    """Maintain the test status file."""
    ctx.obj = StatusMonitor(status_file or ProdConfig().status_file)


@monitor_app.command(name="init", help="Start a fresh status record.")
def init_cmd(ctx: typer.Context) -> None:
    monitor: StatusMonitor = ctx.obj
    monitor.init()
    console.print(f"[green]Initialized[/green] {escape(str(monitor.path))}")


@monitor_app.command(name="update", help="Record the status of one suite.")
def update_cmd(
    ctx: typer.Context,
    suite: str = typer.Argument(..., help="Suite name."),
    status: str = typer.Argument(..., help="Suite status (running, passed, failed, ...)."),
    details: Optional[str] = typer.Argument(None, help="Extra details as a JSON object."),
) -> None:
    monitor: StatusMonitor = ctx.obj
    extra = {}
    if details:
        try:
            extra = json.loads(details)
        except ValueError as exc:
            console.print(f"[bold red]Invalid details JSON:[/bold red] {escape(str(exc))}")
            raise typer.Exit(code=1)
        if not isinstance(extra, dict):
            console.print("[bold red]Details must be a JSON object.[/bold red]")
            raise typer.Exit(code=1)
    try:
        monitor.update(suite, status, extra)
    except ValidationError as exc:
        console.print(f"[bold red]Invalid details:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    console.print(f"{escape(suite)}: {escape(status)}")


@monitor_app.command(name="error", help="Record an error.")
def error_cmd(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Error message."),
    suite: Optional[str] = typer.Option(None, "--suite", "-s", help="Suite the error belongs to."),
    stack: Optional[str] = typer.Option(None, "--stack", help="Stack trace text."),
) -> None:
    monitor: StatusMonitor = ctx.obj
    monitor.error(message, suite=suite, stack=stack)
    console.print(f"[red]Error recorded:[/red] {escape(message)}")


@monitor_app.command(name="warning", help="Record a warning.")
def warning_cmd(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="Warning message."),
    suite: Optional[str] = typer.Option(None, "--suite", "-s", help="Suite the warning belongs to."),
) -> None:
    monitor: StatusMonitor = ctx.obj
    monitor.warning(message, suite=suite)
    console.print(f"[yellow]Warning recorded:[/yellow] {escape(message)}")


@monitor_app.command(name="finish", help="Close the run; exits 1 if it failed or recorded errors.")
def finish_cmd(
    ctx: typer.Context,
    status: str = typer.Argument("completed", help="Final status: passed, failed or completed."),
) -> None:
    monitor: StatusMonitor = ctx.obj
    try:
        final = OverallStatus(status)
    except ValueError:
        choices = ", ".join(s.value for s in OverallStatus)
        console.print(f"[bold red]Unknown status:[/bold red] {escape(status)} (expected one of {choices})")
        raise typer.Exit(code=1)
    monitor.finish(final)
    summary = monitor.summary()
    console.print(
        f"Finished: {summary.overall.value}  |  "
        f"{summary.passed_suites}/{summary.total_suites} suites passed  |  "
        f"{summary.errors} errors"
    )
    if monitor.should_fail():
        raise typer.Exit(code=1)


@monitor_app.command(name="summary", help="Show the current status.")
def summary_cmd(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
    live: bool = typer.Option(
        False,
        "--live",
        "-L",
        help="Keep re-reading the status file (Ctrl+C to exit).",
    ),
    refresh_hz: float = typer.Option(
        2.0,
        "--refresh",
        "-r",
        help="Refresh rate in Hz for live mode.",
    ),
) -> None:
    monitor: StatusMonitor = ctx.obj
    if as_json:
        console.print_json(json.dumps(monitor.summary().as_dict()))
        return
    renderer = RunRenderer(console=console)
    if live:
        renderer.render_live(monitor, refresh_hz=refresh_hz)
    else:
        renderer.print_status(monitor)


@monitor_app.command(name="cleanup", help="Delete the status file.")
def cleanup_cmd(ctx: typer.Context) -> None:
    monitor: StatusMonitor = ctx.obj
    if monitor.cleanup():
        console.print(f"Removed {escape(str(monitor.path))}")
    else:
        console.print(f"[dim]No status file at {escape(str(monitor.path))}[/dim]")
