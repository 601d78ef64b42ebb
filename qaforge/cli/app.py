"""Main Typer application — imports and registers all CLI commands.

Entry point: ``qaforge`` (configured via pyproject.toml console_scripts).

Commands: aggregate, run, monitor (init, update, error, warning, finish,
summary, cleanup).
"""

from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from qaforge.cli.commands.aggregate import aggregate_cmd
from qaforge.cli.commands.monitor_cmd import monitor_app
from qaforge.cli.commands.run import run_cmd
from qaforge.config import config

app = typer.Typer(
    name="qaforge",
    help="qaforge: QA results aggregation and reporting pipeline.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="aggregate", help="Aggregate test artifacts into reports.")(aggregate_cmd)
app.command(name="run", help="Run the configured test tools, then aggregate.")(run_cmd)
app.add_typer(monitor_app, name="monitor", help="Maintain the test status file.")


def configure_logging(level: str) -> None:
    """Route ``qaforge.*`` loggers to a Rich handler on stderr."""
    package_logger = logging.getLogger("qaforge")
    package_logger.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        )


@app.callback()
def main_options(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to QAFORGE_LOG_LEVEL).",
    ),
) -> None:
    """qaforge: QA results aggregation and reporting pipeline."""
    configure_logging(log_level or config.log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
