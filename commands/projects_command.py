import requests
import typer
from rich.console import Console
from rich.table import Table

from dida_api.client import INBOX_PROJECT_ID, DidaAPIError
from utils.config import Settings

from .clients import build_dida_client

console = Console()


def handle_list_projects(settings: Settings) -> None:
    """Print the Dida projects (and the inbox) as a table."""
    dida = build_dida_client(settings)
    try:
        projects = dida.get_projects()
    except (DidaAPIError, requests.RequestException) as e:
        console.print(f"[red]Could not list projects: {e}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Dida projects")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Closed", style="magenta")
    table.add_row(INBOX_PROJECT_ID, settings.inbox_name, "")
    for p in projects:
        table.add_row(p.id, p.name, "yes" if p.closed else "")
    console.print(table)
