#!/usr/bin/env python3
import logging
from enum import Enum
from typing import Optional

import typer
from rich.console import Console

from commands.auth_command import handle_auth
from commands.projects_command import handle_list_projects
from commands.sync_command import handle_back_sync, handle_sync
from utils.config import ConfigError, Settings, load_env_vars
from utils.logger import configure_logging

__version__ = "1.0.0"

console = Console(stderr=True)


class Pacing(str, Enum):
    fixed = "fixed"
    token_bucket = "token-bucket"


class CorrelationMode(str, Enum):
    query = "query"
    scan = "scan"


app = typer.Typer(
    name="dnsync",
    help="Dida → Notion sync: mirror Dida365/TickTick tasks into a Notion database and bring completions back.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool):
    if value:
        print(f"dnsync {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log request details (DEBUG level)."),
):
    """Load .env files and set up logging before any command runs."""
    load_env_vars()
    configure_logging(logging.DEBUG if verbose else logging.INFO)


def _load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command("auth")
def auth(
    no_browser: bool = typer.Option(False, "--no-browser", help="Only print the authorization URL."),
    timeout: float = typer.Option(120, "--timeout", help="Seconds to wait for the authorization callback."),
):
    """Authorize access to Dida and save the token."""
    handle_auth(_load_settings(), open_browser=not no_browser, timeout=timeout)


@app.command("sync")
def sync(
    delay: Optional[float] = typer.Option(None, "--delay", min=0, help="Seconds to wait after each Notion write."),
    pacing: Optional[Pacing] = typer.Option(None, "--pacing", help="Write pacing strategy."),
    max_graph_passes: Optional[int] = typer.Option(
        None, "--max-graph-passes", min=1, help="Passes used to fetch sub-tasks/parents missing from the listings."
    ),
    correlation: Optional[CorrelationMode] = typer.Option(
        None, "--correlation", help="Find existing pages by per-task query or from one full scan."
    ),
    skip_back_sync: bool = typer.Option(False, "--skip-back-sync", help="Do not push Notion completions to Dida."),
    back_sync_last: bool = typer.Option(
        False, "--back-sync-last", help="Check completions after writing pages instead of before."
    ),
):
    """Sync every Dida task into the Notion database."""
    settings = _load_settings()
    if delay is not None:
        settings.write_delay = delay
    if pacing is not None:
        settings.pacing = pacing.value
    if max_graph_passes is not None:
        settings.max_graph_passes = max_graph_passes
    if correlation is not None:
        settings.correlation_mode = correlation.value
    handle_sync(settings, back_sync=not skip_back_sync, back_sync_first=not back_sync_last)


@app.command("back-sync")
def back_sync():
    """Mark Dida tasks done when their Notion page is done."""
    handle_back_sync(_load_settings())


@app.command("list-projects")
def list_projects():
    """List Dida projects with their IDs."""
    handle_list_projects(_load_settings())


if __name__ == "__main__":
    app()
