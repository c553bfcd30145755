"""Build authenticated API clients from settings for the CLI commands."""
from pathlib import Path

import typer
from rich.console import Console

from dida_api.client import DidaClient
from dida_api.oauth import DidaOAuth, OAuthError
from notion_api.client import NotionClient
from utils.config import Settings

console = Console(stderr=True)


def build_oauth(settings: Settings) -> DidaOAuth:
    missing = settings.missing_dida_credentials()
    if missing:
        console.print(f"[red]Missing configuration: {', '.join(missing)}[/red]")
        console.print("Set them in .env, ~/.dnsync.env or the environment.")
        raise typer.Exit(code=1)
    return DidaOAuth(settings.dida_client_id, settings.dida_client_secret, settings.dida_redirect_url)


def build_dida_client(settings: Settings) -> DidaClient:
    """Return a Dida client using the saved token; exits if there is none."""
    token_path = Path(settings.token_file)
    oauth = build_oauth(settings)
    try:
        token = oauth.load_token(token_path)
    except FileNotFoundError:
        console.print(f"[red]No saved authorization at {token_path}.[/red] Run `dnsync auth` first.")
        raise typer.Exit(code=1)
    except OAuthError as e:
        console.print(f"[red]{e}[/red] Run `dnsync auth` again.")
        raise typer.Exit(code=1)
    return DidaClient(token, base_url=settings.dida_api_base)


def build_notion_client(settings: Settings) -> NotionClient:
    missing = settings.missing_notion_settings()
    if missing:
        console.print(f"[red]Missing configuration: {', '.join(missing)}[/red]")
        raise typer.Exit(code=1)
    return NotionClient(settings.notion_token, settings.notion_database_id)
