#!/usr/bin/env python3
"""
Command line front end for liftoff.

Usage:
    lift list                  - All candidates, most used first
    lift search "query"        - Ranked matches for a query
    lift select "query"        - Print the best match's value and count it
    lift history               - Show learned usage counts
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from ..core.config import Config, default_log_dir
from ..core.errors import ConfigError, HistoryLoadError, LiftoffError
from ..core.history import UsageHistory
from ..core.models import Candidate
from ..core.session import LauncherSession

console = Console()
err_console = Console(stderr=True)


def setup_logging(level: str = "WARNING", log_file: bool = False) -> None:
    """Route loguru output to stderr and optionally a rotating file."""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level
    )

    if log_file:
        log_dir = default_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "liftoff.log",
            rotation="1 day",
            retention="7 days",
            level="DEBUG"
        )


def source_options(func):
    """Options shared by every command that builds the index."""
    options = [
        click.option("--path/--no-path", "from_path", default=None,
                     help="Scan the search path for executables"),
        click.option("--file", "-f", "files", multiple=True,
                     type=click.Path(path_type=Path),
                     help="Read entries from a file (repeatable)"),
        click.option("--stdin", "from_stdin", is_flag=True, default=None,
                     help="Read entries from standard input"),
        click.option("--history", "history_path", type=click.Path(path_type=Path),
                     help="History file to use"),
        click.option("--no-history", is_flag=True, help="Do not read or write history"),
        click.option("--decrease-interval", type=click.IntRange(min=0),
                     help="Hours after which one use is forgotten (0 disables)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def apply_overrides(
    config: Config,
    from_path: Optional[bool] = None,
    files: tuple = (),
    from_stdin: Optional[bool] = None,
    history_path: Optional[Path] = None,
    no_history: bool = False,
    decrease_interval: Optional[int] = None
) -> Config:
    """Command line flags win over the config file."""
    if files:
        config.sources.files = [p.expanduser() for p in files]
        # explicit files replace the path scan unless --path was given
        if from_path is None:
            config.sources.from_path = False
    if from_stdin:
        config.sources.from_stdin = True
        if from_path is None:
            config.sources.from_path = False
    if from_path is not None:
        config.sources.from_path = from_path
    if history_path is not None:
        config.history.path = history_path
    if no_history:
        config.history.enabled = False
    if decrease_interval is not None:
        config.history.decrease_interval = decrease_interval
    return config


def report_error(ctx: click.Context, error: LiftoffError) -> None:
    """Print a diagnostic; fatal errors end the command with exit code 1."""
    color = "red" if error.is_fatal else "yellow"
    err_console.print(f"[{color}]Error:[/{color}] {error}")
    if error.is_fatal:
        ctx.exit(1)


def start_session(ctx: click.Context, **overrides) -> LauncherSession:
    """Build a ready session or exit with a diagnostic."""
    config = apply_overrides(ctx.obj["config"], **overrides)
    session = LauncherSession(config, stdin=sys.stdin)
    try:
        asyncio.run(session.start())
    except LiftoffError as e:
        report_error(ctx, e)
    return session


def display_candidates(candidates: List[Candidate], title: str, limit: int) -> None:
    """Display candidates in a table."""
    if not candidates:
        console.print("[yellow]No matches[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Value", no_wrap=False)
    table.add_column("Score", justify="right")

    for c in candidates[:limit]:
        table.add_row(c.name, c.value if c.value != c.name else "", str(c.base_score))

    console.print(table)
    if len(candidates) > limit:
        console.print(f"[dim]... {len(candidates) - limit} more[/dim]")


@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(path_type=Path),
              help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, config_path: Optional[Path], verbose: bool):
    """liftoff - candidate index and ranking for a command launcher."""
    try:
        config = Config.load(config_path)
    except ConfigError as e:
        report_error(ctx, e)

    setup_logging("DEBUG" if verbose else config.logging.level, config.logging.file)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@cli.command(name="list")
@source_options
@click.option("--limit", "-l", default=50, help="Max rows")
@click.pass_context
def list_candidates(ctx, limit: int, **overrides):
    """Show every candidate, most used first."""
    session = start_session(ctx, **overrides)
    candidates = session.candidates()
    display_candidates(candidates, f"Candidates ({len(candidates)})", limit)


@cli.command()
@click.argument("query")
@source_options
@click.option("--limit", "-l", default=10, help="Max results")
@click.pass_context
def search(ctx, query: str, limit: int, **overrides):
    """Rank candidates against QUERY."""
    session = start_session(ctx, **overrides)
    results = session.search(query)
    display_candidates(results, f"Results for '{query}'", limit)


@cli.command()
@click.argument("query")
@source_options
@click.pass_context
def select(ctx, query: str, **overrides):
    """Print the value of the best match for QUERY and count the launch."""
    session = start_session(ctx, **overrides)
    try:
        candidate = session.select(query)
    except LiftoffError as e:
        report_error(ctx, e)
    click.echo(candidate.value)
    session.record_launch(candidate.name, candidate.value, succeeded=True)


@cli.command()
@click.option("--history", "history_path", type=click.Path(path_type=Path),
              help="History file to use")
@click.option("--decrease-interval", type=click.IntRange(min=0),
              help="Hours after which one use is forgotten (0 disables)")
@click.pass_context
def history(ctx, history_path: Optional[Path], decrease_interval: Optional[int]):
    """Show learned usage counts."""
    config = apply_overrides(
        ctx.obj["config"],
        history_path=history_path,
        decrease_interval=decrease_interval
    )
    path = config.history.resolved_path()
    try:
        usage = UsageHistory.load(path, config.history.decrease_interval)
    except HistoryLoadError as e:
        report_error(ctx, e)
        return

    if not usage.records:
        console.print(f"[yellow]No history in {path}[/yellow]")
        return

    table = Table(title=f"History ({path})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Value")
    table.add_column("Uses", justify="right")
    for record in sorted(usage.records, key=lambda r: r.num_used, reverse=True):
        table.add_row(record.name, record.value, str(record.num_used))
    console.print(table)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
