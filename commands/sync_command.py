import requests
import typer
from rich.console import Console
from rich.table import Table

from dida_api.client import DidaAPIError
from notion_api.client import NotionAPIError
from sync_engine.runner import RunReport, SyncAbortedError, run_back_sync_only, run_reconciliation
from sync_engine.status_sync import BackSyncResult
from utils.config import Settings

from .clients import build_dida_client, build_notion_client

console = Console()

_FATAL_ERRORS = (SyncAbortedError, DidaAPIError, NotionAPIError, requests.RequestException)


def _back_sync_rows(table: Table, result: BackSyncResult) -> None:
    table.add_row("Marked done in Dida", str(result.completed))
    if result.failed:
        table.add_row("Failed to mark done", str(result.failed))
    if result.inconsistencies:
        table.add_row("Status mismatches", str(result.inconsistencies))


def render_report(report: RunReport) -> Table:
    table = Table(title="Sync complete", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Projects", str(report.projects))
    table.add_row("Tasks", str(report.tasks))
    if report.fetched_related:
        table.add_row("Fetched related tasks", str(report.fetched_related))
    if report.sync is not None:
        table.add_row("Created", str(report.sync.created))
        table.add_row("Updated", str(report.sync.updated))
        table.add_row("Skipped", str(report.sync.skipped))
        table.add_row("Failed", str(report.sync.failed))
        table.add_row("Parent links", f"{report.sync.parent_links.succeeded} ok / {report.sync.parent_links.failed} failed")
        table.add_row("Child lists", f"{report.sync.child_links.succeeded} ok / {report.sync.child_links.failed} failed")
    if report.back_sync is not None:
        _back_sync_rows(table, report.back_sync)
    return table


def handle_sync(settings: Settings, back_sync: bool = True, back_sync_first: bool = True) -> RunReport:
    """Run one full reconciliation and print the summary."""
    dida = build_dida_client(settings)
    notion = build_notion_client(settings)
    try:
        report = run_reconciliation(
            dida, notion, settings, back_sync=back_sync, back_sync_first=back_sync_first
        )
    except _FATAL_ERRORS as e:
        console.print(f"[red]Sync aborted: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(render_report(report))
    return report


def handle_back_sync(settings: Settings) -> BackSyncResult:
    """Only push Notion completions back to Dida."""
    dida = build_dida_client(settings)
    notion = build_notion_client(settings)
    try:
        result = run_back_sync_only(dida, notion, settings)
    except _FATAL_ERRORS as e:
        console.print(f"[red]Back-sync aborted: {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Back-sync complete", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    _back_sync_rows(table, result)
    console.print(table)
    return result
