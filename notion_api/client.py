"""HTTP client for the Notion database/page endpoints used by the sync.

Only the three calls the reconciler needs are wrapped: query a database (with
cursor pagination), create a page and update a page's properties. Status codes
of 400 and above raise :class:`NotionAPIError`; a 429 raises the more specific
:class:`RateLimitedError` so callers can see the advertised ``Retry-After``.
"""
from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

import requests

from utils.logger import get_logger

from .data_models import Page, QueryResponse

__all__ = ["NotionClient", "NotionAPIError", "RateLimitedError"]

BASE_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"

log = get_logger(__name__)


class NotionAPIError(RuntimeError):
    """Raised when the Notion API answers with a status >= 400."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RateLimitedError(NotionAPIError):
    """Raised on HTTP 429; ``retry_after`` is in seconds when the server sent one."""

    def __init__(self, message: str, retry_after: Optional[float] = None, body: str = ""):
        super().__init__(message, status_code=429, body=body)
        self.retry_after = retry_after


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class NotionClient:
    def __init__(
        self,
        token: str,
        database_id: str,
        base_url: str = BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.token = token
        self.database_id = database_id
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Notion-Version": NOTION_VERSION,
        }
        log.debug("%s %s %s", method, path, body)
        resp = self.session.request(
            method, f"{self.base_url}{path}", headers=headers, json=body, timeout=self.timeout
        )
        if resp.status_code == 429:
            retry_after = _parse_retry_after(resp.headers.get("Retry-After"))
            raise RateLimitedError(
                f"Notion API rate limited on {method} {path} (retry after {retry_after}s)",
                retry_after=retry_after,
                body=resp.text,
            )
        if resp.status_code >= 400:
            raise NotionAPIError(
                f"Notion API error on {method} {path}: {resp.status_code} {resp.reason}, body: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        return resp.json() if resp.content else {}

    def query_database(
        self,
        filter: Optional[Dict[str, Any]] = None,
        start_cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> QueryResponse:
        body: Dict[str, Any] = {}
        if filter is not None:
            body["filter"] = filter
        if start_cursor:
            body["start_cursor"] = start_cursor
        if page_size:
            body["page_size"] = page_size
        data = self._request("POST", f"/databases/{self.database_id}/query", body)
        return QueryResponse.from_api(data)

    def iter_pages(self, filter: Optional[Dict[str, Any]] = None) -> Iterator[Page]:
        """Yield every page of the database, following ``next_cursor``."""
        cursor = None
        while True:
            result = self.query_database(filter=filter, start_cursor=cursor)
            yield from result.results
            if not result.has_more or not result.next_cursor:
                break
            cursor = result.next_cursor

    def get_all_pages(self, filter: Optional[Dict[str, Any]] = None) -> List[Page]:
        return list(self.iter_pages(filter))

    def create_page(self, properties: Dict[str, Any]) -> Page:
        body = {
            "parent": {"database_id": self.database_id},
            "properties": properties,
        }
        return Page.from_api(self._request("POST", "/pages", body))

    def update_page(self, page_id: str, properties: Dict[str, Any]) -> Page:
        return Page.from_api(self._request("PATCH", f"/pages/{page_id}", {"properties": properties}))
