"""One reconciliation run, end to end."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

import requests

from dida_api.client import INBOX_PROJECT_ID, DidaAPIError, DidaClient
from dida_api.data_models import Project, Task, TaskStatus
from notion_api.client import NotionAPIError, NotionClient
from notion_api.data_models import Page
from utils.config import Settings
from utils.logger import get_logger

from .correlation import CorrelationIndex
from .graph import complete_task_graph
from .pacing import build_pacer
from .reconciler import Reconciler, SyncResult
from .status_sync import BackSyncResult, StatusBackSync

log = get_logger(__name__)


class SyncAbortedError(RuntimeError):
    """Raised when the run cannot start because the source data is unavailable."""


@dataclass
class RunReport:
    projects: int = 0
    tasks: int = 0
    fetched_related: int = 0
    sync: Optional[SyncResult] = None
    back_sync: Optional[BackSyncResult] = None


def build_project_map(projects: Sequence[Project], inbox_name: str) -> Dict[str, str]:
    project_map = {INBOX_PROJECT_ID: inbox_name}
    for project in projects:
        project_map[project.id] = project.name or project.id
    return project_map


def fetch_source(dida: DidaClient) -> Tuple[List[Project], List[Task]]:
    """List projects and tasks; any failure (or no tasks at all) aborts the run."""
    try:
        projects = dida.get_projects()
    except (DidaAPIError, requests.RequestException) as e:
        raise SyncAbortedError(f"Could not list Dida projects: {e}") from e
    log.info("Found %d project(s) plus the inbox", len(projects))

    try:
        tasks = dida.get_all_tasks(projects)
    except (DidaAPIError, requests.RequestException) as e:
        raise SyncAbortedError(f"Could not list Dida tasks: {e}") from e
    if not tasks:
        raise SyncAbortedError("No tasks returned by Dida; nothing to sync")
    log.info("Found %d task(s)", len(tasks))
    return projects, tasks


def mark_done(tasks: Sequence[Task], task_ids: Set[str]) -> List[Task]:
    """Return *tasks* with the given ids switched to DONE."""
    if not task_ids:
        return list(tasks)
    return [
        t.model_copy(update={"status": TaskStatus.DONE}) if t.id in task_ids else t
        for t in tasks
    ]


def scan_target(notion: NotionClient) -> Optional[List[Page]]:
    """Read every page of the database; ``None`` when the scan fails."""
    log.info("Scanning the Notion database")
    try:
        return notion.get_all_pages()
    except (NotionAPIError, requests.RequestException) as e:
        log.error("Could not scan the Notion database: %s", e)
        return None


def run_back_sync(dida: DidaClient, tasks: Sequence[Task], pages: Sequence[Page], settings: Settings) -> BackSyncResult:
    log.info("Checking %d Notion page(s) for completed tasks", len(pages))
    return StatusBackSync(dida, settings.schema).run(tasks, pages)


def run_reconciliation(
    dida: DidaClient,
    notion: NotionClient,
    settings: Settings,
    back_sync: bool = True,
    back_sync_first: bool = True,
    pacer=None,
) -> RunReport:
    """List, complete, back-sync and reconcile; see the module docs of each step.

    With *back_sync_first* the Notion scan happens before any page is
    written, so a page marked done is read before phase 1 rewrites its
    status from Dida; tasks closed that way, and tasks whose close failed,
    are synced as done. A failed
    scan skips the back-sync, but aborts the run in ``scan`` correlation
    mode since the index cannot be built without it.
    """
    report = RunReport()
    projects, tasks = fetch_source(dida)
    report.projects = len(projects)
    project_map = build_project_map(projects, settings.inbox_name)

    listed = len(tasks)
    tasks, _ = complete_task_graph(tasks, dida.get_task, max_passes=settings.max_graph_passes)
    report.fetched_related = len(tasks) - listed
    report.tasks = len(tasks)

    index = CorrelationIndex(notion, settings.schema)
    pages: Optional[List[Page]] = None
    if (back_sync and back_sync_first) or settings.correlation_mode == "scan":
        pages = scan_target(notion)

    if settings.correlation_mode == "scan":
        if pages is None:
            raise SyncAbortedError("Could not scan the Notion database to build the page index")
        log.info("Indexed %d existing page(s)", index.prime(pages))

    if back_sync and back_sync_first and pages is not None:
        report.back_sync = run_back_sync(dida, tasks, pages, settings)
        # Pages whose Dida update failed stay done; the next run retries them.
        done_in_notion = set(report.back_sync.completed_ids) | set(report.back_sync.failed_ids)
        tasks = mark_done(tasks, done_in_notion)

    if pacer is None:
        pacer = build_pacer(settings.pacing, settings.write_delay, settings.rate_limit)
    reconciler = Reconciler(notion, index, pacer, settings.schema, project_map, settings.inbox_name)
    report.sync = reconciler.run(tasks)

    if back_sync and not back_sync_first:
        pages = scan_target(notion)
        if pages is not None:
            report.back_sync = run_back_sync(dida, tasks, pages, settings)
    return report


def run_back_sync_only(dida: DidaClient, notion: NotionClient, settings: Settings) -> BackSyncResult:
    _, tasks = fetch_source(dida)
    tasks, _ = complete_task_graph(tasks, dida.get_task, max_passes=settings.max_graph_passes)
    pages = scan_target(notion)
    if pages is None:
        raise SyncAbortedError("Could not scan the Notion database")
    return run_back_sync(dida, tasks, pages, settings)
