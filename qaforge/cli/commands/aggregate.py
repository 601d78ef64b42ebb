"""``qaforge aggregate`` — turn a results tree into the report families.

Exits 0 whenever reports were written, whatever the tests' outcome; exits 1
only when the pipeline itself failed (bad configuration, lock timeout,
emission failure, cancellation or budget overrun).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from qaforge.config import ProdConfig
from qaforge.core.orchestrator import FATAL_ERRORS, Orchestrator, RunOutcome
from qaforge.models.config import ConfigError, PipelineConfig
from qaforge.monitor.renderer import RunRenderer

console = Console()


def load_pipeline_config(config_file: Path | None, settings: ProdConfig) -> PipelineConfig:
    """Explicit file, then QAFORGE_CONFIG_FILE, then qaforge.toml / pyproject.toml."""
    path = config_file or settings.config_file
    if path is not None:
        return PipelineConfig.from_file(path)
    return PipelineConfig.discover(Path.cwd())


def with_roots(settings: ProdConfig, results_dir: Path | None, reports_dir: Path | None) -> ProdConfig:
    update = {}
    if results_dir is not None:
        update["results_root"] = results_dir
    if reports_dir is not None:
        update["report_root"] = reports_dir
    return settings.model_copy(update=update) if update else settings


def report_outcome(outcome: RunOutcome, quiet: bool = False) -> None:
    if not quiet:
        RunRenderer(console=console).print_outcome(outcome)
    if not outcome.history_saved:
        console.print("[yellow]History file left untouched (unreadable or locked out).[/yellow]")
    normalized = outcome.outputs.get("normalized")
    if normalized is not None:
        console.print(f"[dim]Reports written under {escape(str(normalized.parent))}[/dim]")


def aggregate_cmd(
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
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Pipeline configuration file (.toml or .json).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Skip the terminal summary.",
    ),
) -> None:
    """Aggregate every artifact under the results root and write all reports."""
    settings = ProdConfig()
    try:
        pipeline = load_pipeline_config(config_file, settings)
    except ConfigError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    orchestrator = Orchestrator(pipeline, prod_config=with_roots(settings, results_dir, reports_dir))
    try:
        outcome = orchestrator.run()
    except FATAL_ERRORS as exc:
        console.print(f"[bold red]Aggregation failed:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    report_outcome(outcome, quiet)
