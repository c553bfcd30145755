"""
Configuration utilities for the dnsync tool.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from dida_api.client import DEFAULT_BASE_URL as DIDA_BASE_URL
from notion_api.properties import PropertySchema

DEFAULT_REDIRECT_URL = "http://localhost:8080/callback"
DEFAULT_DIDA_API_BASE = DIDA_BASE_URL
DEFAULT_TOKEN_FILE = ".token"

PACING_STRATEGIES = ("fixed", "token-bucket")
CORRELATION_MODES = ("query", "scan")


class ConfigError(ValueError):
    """Raised when a configuration value cannot be interpreted."""


def load_env_vars() -> None:
    """
    Load environment variables from .env files in the following order:
    1. .env in the current directory
    2. .dnsync.env in the user's home directory

    Values already present in the environment are never overridden.
    """
    if os.path.exists(".env"):
        load_dotenv(".env")

    home_env = Path.home() / ".dnsync.env"
    if home_env.exists():
        load_dotenv(home_env)


def get_config(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get configuration value from environment variables."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _get_float(key: str, default: float) -> float:
    raw = get_config(key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {raw!r}")
    return value


def _get_int(key: str, default: int) -> int:
    raw = get_config(key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{key} must be at least 1, got {raw!r}")
    return value


def _get_choice(key: str, default: str, choices) -> str:
    value = (get_config(key) or default).lower()
    if value not in choices:
        raise ConfigError(f"{key} must be one of {', '.join(choices)}, got {value!r}")
    return value


@dataclass
class Settings:
    """Everything a sync run needs, resolved from the environment."""

    dida_client_id: Optional[str] = None
    dida_client_secret: Optional[str] = None
    dida_redirect_url: str = DEFAULT_REDIRECT_URL
    dida_api_base: str = DEFAULT_DIDA_API_BASE
    notion_token: Optional[str] = None
    notion_database_id: Optional[str] = None
    token_file: str = DEFAULT_TOKEN_FILE
    write_delay: float = 0.35
    pacing: str = "fixed"
    rate_limit: float = 3.0
    max_graph_passes: int = 3
    correlation_mode: str = "query"
    inbox_name: str = "Inbox"
    schema: PropertySchema = field(default_factory=PropertySchema)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            dida_client_id=get_config("DIDA_CLIENT_ID"),
            dida_client_secret=get_config("DIDA_CLIENT_SECRET"),
            dida_redirect_url=get_config("DIDA_REDIRECT_URL", DEFAULT_REDIRECT_URL),
            dida_api_base=get_config("DIDA_API_BASE", DEFAULT_DIDA_API_BASE).rstrip("/"),
            notion_token=get_config("NOTION_TOKEN"),
            notion_database_id=get_config("NOTION_DATABASE_ID"),
            token_file=get_config("SYNC_TOKEN_FILE", DEFAULT_TOKEN_FILE),
            write_delay=_get_float("SYNC_WRITE_DELAY", 0.35),
            pacing=_get_choice("SYNC_PACING", "fixed", PACING_STRATEGIES),
            rate_limit=_get_float("SYNC_RATE_LIMIT", 3.0),
            max_graph_passes=_get_int("SYNC_MAX_GRAPH_PASSES", 3),
            correlation_mode=_get_choice("SYNC_CORRELATION_MODE", "query", CORRELATION_MODES),
            inbox_name=get_config("DIDA_INBOX_NAME", "Inbox"),
            schema=PropertySchema.from_env(get_config),
        )

    def missing_dida_credentials(self) -> list:
        return [
            name
            for name, value in (
                ("DIDA_CLIENT_ID", self.dida_client_id),
                ("DIDA_CLIENT_SECRET", self.dida_client_secret),
            )
            if not value
        ]

    def missing_notion_settings(self) -> list:
        return [
            name
            for name, value in (
                ("NOTION_TOKEN", self.notion_token),
                ("NOTION_DATABASE_ID", self.notion_database_id),
            )
            if not value
        ]
