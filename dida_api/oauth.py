"""OAuth2 authorization-code handshake for the Dida365 Open API.

The flow is the usual three steps: open :meth:`DidaOAuth.get_auth_url` in a
browser, catch the redirect with :meth:`DidaOAuth.wait_for_callback`, then trade
the code for a token with :meth:`DidaOAuth.exchange_token`. The token is kept
on disk between runs so the browser step is only needed once.
"""
from __future__ import annotations

import json
import os
import time
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Optional, Union

import requests

from utils.logger import get_logger

from .data_models import TokenResponse

AUTH_URL = "https://dida365.com/oauth/authorize"
TOKEN_URL = "https://dida365.com/oauth/token"
SCOPE = "tasks:read tasks:write"

log = get_logger(__name__)


class OAuthError(RuntimeError):
    """Raised when the authorization handshake cannot complete."""


class OAuthCallbackHandler(BaseHTTPRequestHandler):
    """Handle the OAuth redirect and stash the auth code on the server."""

    def do_GET(self):
        parsed = urllib.parse.urlparse(self.path)
        if parsed.path != self.server.callback_path:
            self.send_response(404)
            self.end_headers()
            return
        params = urllib.parse.parse_qs(parsed.query)

        if "code" in params:
            self.server.auth_code = params["code"][0]
            self.server.auth_state = params.get("state", [None])[0]
            self.send_response(200)
            self.send_header("Content-type", "text/plain; charset=utf-8")
            self.end_headers()
            self.wfile.write(b"Authorization successful! You can close this window.")
        else:
            self.server.auth_error = params.get("error", ["no code in callback"])[0]
            self.send_response(400)
            self.send_header("Content-type", "text/plain; charset=utf-8")
            self.end_headers()
            self.wfile.write(b"Authorization failed! No authorization code received.")

    def log_message(self, format, *args):
        log.debug("callback server: " + format, *args)


class DidaOAuth:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        session: Optional[requests.Session] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        self.session = session or requests.Session()
        self._token: Optional[TokenResponse] = None

    @property
    def token(self) -> Optional[TokenResponse]:
        return self._token

    @token.setter
    def token(self, value: Optional[TokenResponse]) -> None:
        self._token = value

    def get_auth_url(self, state: str = "state") -> str:
        """Return the URL the user must open to grant access."""
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "response_type": "code",
            "scope": SCOPE,
            "state": state,
        }
        return f"{AUTH_URL}?{urllib.parse.urlencode(params)}"

    def bind_callback_server(self) -> HTTPServer:
        """Listen on the host and port of the redirect URL."""
        parsed = urllib.parse.urlparse(self.redirect_url)
        host = parsed.hostname or "localhost"
        port = parsed.port if parsed.port is not None else 80

        server = HTTPServer((host, port), OAuthCallbackHandler)
        server.callback_path = parsed.path or "/"
        server.auth_code = None
        server.auth_state = None
        server.auth_error = None
        return server

    def wait_for_callback(
        self,
        timeout: float = 120,
        expected_state: Optional[str] = None,
        server: Optional[HTTPServer] = None,
    ) -> str:
        """Serve the redirect URL locally until a code arrives or *timeout* expires.

        Requests for other paths are answered with 404 and ignored. When
        *expected_state* is given, a callback carrying any other state is
        rejected.
        """
        if server is None:
            server = self.bind_callback_server()
        deadline = time.monotonic() + timeout
        try:
            while server.auth_code is None and server.auth_error is None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise OAuthError(f"Timed out after {timeout:g}s waiting for the authorization callback")
                server.timeout = remaining
                server.handle_request()
        finally:
            server.server_close()

        if server.auth_error is not None:
            raise OAuthError(f"Authorization failed: {server.auth_error}")
        if expected_state is not None and server.auth_state != expected_state:
            raise OAuthError("Authorization callback state does not match the request")
        log.debug("Received authorization code on %s", server.callback_path)
        return server.auth_code

    def exchange_token(self, code: str) -> TokenResponse:
        """Trade an authorization code for an access token."""
        data = {
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_url,
            "scope": SCOPE,
        }
        resp = self.session.post(
            TOKEN_URL,
            data=data,
            auth=(self.client_id, self.client_secret),
            timeout=30,
        )
        if resp.status_code != 200:
            raise OAuthError(f"Token exchange failed: {resp.status_code} {resp.reason}, body: {resp.text}")
        self._token = TokenResponse.model_validate(resp.json())
        return self._token

    def save_token(self, filename: Union[str, Path]) -> None:
        if self._token is None:
            raise OAuthError("No token to save")
        path = Path(filename)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(self._token.model_dump(exclude_none=True), f, indent=2)

    def load_token(self, filename: Union[str, Path]) -> TokenResponse:
        """Load a saved token; raises ``FileNotFoundError`` or ``OAuthError``."""
        with open(filename, "r", encoding="utf-8") as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise OAuthError(f"Token file {filename} is not valid JSON: {e}") from e
        if not isinstance(raw, dict) or not raw.get("access_token"):
            raise OAuthError(f"Token file {filename} has no access_token")
        self._token = TokenResponse.model_validate(raw)
        return self._token
