import json
import os
import stat
import threading
import urllib.parse
from unittest.mock import MagicMock

import pytest
import requests

from dida_api.data_models import TokenResponse
from dida_api.oauth import AUTH_URL, TOKEN_URL, DidaOAuth, OAuthError


@pytest.fixture
def oauth():
    return DidaOAuth("cid", "secret", "http://localhost:8080/callback", session=MagicMock())


def test_auth_url_contains_client_and_scope(oauth):
    url = oauth.get_auth_url("xyz")
    base, query = url.split("?", 1)
    params = urllib.parse.parse_qs(query)

    assert base == AUTH_URL
    assert params["client_id"] == ["cid"]
    assert params["redirect_uri"] == ["http://localhost:8080/callback"]
    assert params["response_type"] == ["code"]
    assert params["scope"] == ["tasks:read tasks:write"]
    assert params["state"] == ["xyz"]


def test_exchange_token_uses_basic_auth(oauth):
    resp = MagicMock(status_code=200)
    resp.json.return_value = {"access_token": "abc", "token_type": "bearer", "expires_in": 3600}
    oauth.session.post.return_value = resp

    token = oauth.exchange_token("the-code")

    assert token.access_token == "abc"
    assert oauth.token is token
    args, kwargs = oauth.session.post.call_args
    assert args == (TOKEN_URL,)
    assert kwargs["auth"] == ("cid", "secret")
    assert kwargs["data"]["code"] == "the-code"
    assert kwargs["data"]["grant_type"] == "authorization_code"


def test_exchange_token_failure(oauth):
    oauth.session.post.return_value = MagicMock(status_code=400, reason="Bad Request", text="invalid_grant")
    with pytest.raises(OAuthError):
        oauth.exchange_token("bad")


def test_save_and_load_token(oauth, tmp_path):
    path = tmp_path / ".token"
    oauth.token = TokenResponse(access_token="abc", refresh_token="r1")

    oauth.save_token(path)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    other = DidaOAuth("cid", "secret", "http://localhost:8080/callback")
    loaded = other.load_token(path)
    assert loaded.access_token == "abc"
    assert loaded.refresh_token == "r1"


def test_save_without_token_fails(oauth, tmp_path):
    with pytest.raises(OAuthError):
        oauth.save_token(tmp_path / ".token")


def test_load_missing_file(oauth, tmp_path):
    with pytest.raises(FileNotFoundError):
        oauth.load_token(tmp_path / "nope")


@pytest.mark.parametrize("content", ["not json", json.dumps({"token_type": "bearer"})])
def test_load_invalid_token_file(oauth, tmp_path, content):
    path = tmp_path / ".token"
    path.write_text(content)
    with pytest.raises(OAuthError):
        oauth.load_token(path)


@pytest.fixture
def local_oauth():
    # Port 0 lets the OS pick a free port for the callback server.
    return DidaOAuth("cid", "secret", "http://127.0.0.1:0/callback", session=MagicMock())


def _visit(server, *paths):
    """Request *paths* on the callback server from a background thread."""
    port = server.server_address[1]
    statuses = []

    def run():
        with requests.Session() as http:
            http.trust_env = False
            for path in paths:
                statuses.append(http.get(f"http://127.0.0.1:{port}{path}", timeout=5).status_code)

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, statuses


def test_callback_returns_code(local_oauth):
    server = local_oauth.bind_callback_server()
    thread, statuses = _visit(server, "/callback?code=x&state=s1")

    code = local_oauth.wait_for_callback(timeout=5, expected_state="s1", server=server)
    thread.join(5)

    assert code == "x"
    assert statuses == [200]


def test_callback_error_raises(local_oauth):
    server = local_oauth.bind_callback_server()
    thread, statuses = _visit(server, "/callback?error=denied")

    with pytest.raises(OAuthError, match="denied"):
        local_oauth.wait_for_callback(timeout=5, server=server)
    thread.join(5)
    assert statuses == [400]


def test_callback_times_out(local_oauth):
    with pytest.raises(OAuthError, match="Timed out"):
        local_oauth.wait_for_callback(timeout=0.2)


def test_callback_rejects_wrong_state(local_oauth):
    server = local_oauth.bind_callback_server()
    thread, _ = _visit(server, "/callback?code=x&state=forged")

    with pytest.raises(OAuthError, match="state"):
        local_oauth.wait_for_callback(timeout=5, expected_state="s1", server=server)
    thread.join(5)


def test_callback_ignores_other_paths(local_oauth):
    server = local_oauth.bind_callback_server()
    thread, statuses = _visit(server, "/favicon.ico?code=wrong", "/callback?code=right")

    code = local_oauth.wait_for_callback(timeout=5, server=server)
    thread.join(5)

    assert code == "right"
    assert statuses == [404, 200]
