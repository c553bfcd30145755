"""HTTP client for the Dida365 / TickTick Open API.

Every request goes out synchronously through one ``requests.Session``. Any
non-2xx response raises :class:`DidaAPIError`; nothing is retried here, callers
decide whether a failure is fatal.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import requests

from utils.logger import get_logger

from .data_models import Project, Task, TaskStatus, TokenResponse

__all__ = ["DidaClient", "DidaAPIError", "NotAuthenticatedError", "INBOX_PROJECT_ID"]

INBOX_PROJECT_ID = "inbox"
DEFAULT_BASE_URL = "https://api.dida365.com/open/v1"

log = get_logger(__name__)


class DidaAPIError(RuntimeError):
    """Raised when the Open API answers with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotAuthenticatedError(DidaAPIError):
    """Raised when a request is attempted without an access token."""


class DidaClient:
    def __init__(
        self,
        token: Optional[TokenResponse],
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        if self.token is None or not self.token.access_token:
            raise NotAuthenticatedError("not authenticated: run `dnsync auth` first")

        headers = {
            "Authorization": f"Bearer {self.token.access_token}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}{path}"
        log.debug("%s %s", method, url)
        resp = self.session.request(method, url, headers=headers, json=payload, timeout=self.timeout)
        if not 200 <= resp.status_code < 300:
            raise DidaAPIError(
                f"Dida API error on {method} {path}: {resp.status_code} {resp.reason}",
                status_code=resp.status_code,
                body=resp.text,
            )
        log.debug("Response for %s: %s", path, resp.text)
        if not resp.content:
            return None
        return resp.json()

    def get_projects(self) -> List[Project]:
        """List every project (the inbox is not part of this listing)."""
        data = self._request("GET", "/project") or []
        return [Project.model_validate(p) for p in data]

    def get_project_tasks(self, project_id: str) -> List[Task]:
        data = self._request("GET", f"/project/{project_id}/data") or {}
        return [Task.model_validate(t) for t in data.get("tasks") or []]

    def get_all_tasks(self, projects: Optional[Iterable[Project]] = None) -> List[Task]:
        """Fetch tasks from the inbox and every project.

        A project (or the inbox) that fails to load is logged and skipped; a
        failure listing the projects themselves propagates.
        """
        if projects is None:
            projects = self.get_projects()

        all_tasks: List[Task] = []
        try:
            inbox_tasks = self.get_project_tasks(INBOX_PROJECT_ID)
            log.debug("Inbox tasks: %d", len(inbox_tasks))
            all_tasks.extend(inbox_tasks)
        except (DidaAPIError, requests.RequestException) as e:
            log.warning("Could not fetch inbox tasks: %s", e)

        for project in projects:
            try:
                all_tasks.extend(self.get_project_tasks(project.id))
            except (DidaAPIError, requests.RequestException) as e:
                log.warning("Could not fetch tasks for project %s: %s", project.name or project.id, e)
        return all_tasks

    def get_task(self, project_id: str, task_id: str) -> Task:
        data = self._request("GET", f"/project/{project_id}/task/{task_id}")
        if not data:
            raise DidaAPIError(f"Task {task_id} returned an empty body")
        return Task.model_validate(data)

    def update_task(self, project_id: str, task: Dict[str, Any]) -> None:
        """Send one task through the batch endpoint (update array only)."""
        payload = {"add": [], "update": [task], "delete": []}
        self._request("POST", f"/project/{project_id}/batch/task", payload)

    def update_task_status(self, project_id: str, task_id: str, status: TaskStatus) -> None:
        self.update_task(project_id, {"id": task_id, "projectId": project_id, "status": int(status)})
