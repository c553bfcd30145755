import secrets
import webbrowser

import requests
import typer
from rich.console import Console

from dida_api.oauth import OAuthError
from utils.config import Settings
from utils.logger import get_logger

from .clients import build_oauth

console = Console()
log = get_logger(__name__)


def handle_auth(settings: Settings, open_browser: bool = True, timeout: float = 120) -> None:
    """Run the browser OAuth flow and save the token to ``settings.token_file``."""
    oauth = build_oauth(settings)
    state = secrets.token_urlsafe(16)
    auth_url = oauth.get_auth_url(state)

    console.print("\nOpen this link in your browser to authorize access:")
    console.print(auth_url, soft_wrap=True)
    if open_browser:
        try:
            webbrowser.open(auth_url)
        except webbrowser.Error as e:
            log.debug("Could not open a browser: %s", e)

    console.print("Waiting for the authorization callback...")
    try:
        code = oauth.wait_for_callback(timeout=timeout, expected_state=state)
        console.print("Received authorization code, requesting a token...")
        oauth.exchange_token(code)
        oauth.save_token(settings.token_file)
    except (OAuthError, OSError, requests.RequestException) as e:
        console.print(f"[red]Authorization failed: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(f"[green]✔ Token saved to {settings.token_file}[/green]")
