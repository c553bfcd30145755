"""Close gaps in a fetched task set.

Dida's project listings can name sub-tasks (``childIds``) or parents that the
listing itself did not return. Each pass collects the ids referenced but not
present and fetches them one by one.
"""
from __future__ import annotations

from typing import Callable, List, Sequence, Set, Tuple

import requests

from dida_api.client import DidaAPIError
from dida_api.data_models import Task
from utils.logger import get_logger

log = get_logger(__name__)

FetchTask = Callable[[str, str], Task]


def find_missing(tasks: Sequence[Task], existing_ids: Set[str]) -> List[Tuple[str, str]]:
    """Return ``(task_id, project_id)`` for every referenced id not in *existing_ids*.

    Children are listed before the parent of each task, in scan order, with no
    repeats.
    """
    missing: List[Tuple[str, str]] = []
    queued: Set[str] = set()
    for task in tasks:
        refs = list(task.child_ids)
        if task.parent_id:
            refs.append(task.parent_id)
        for ref in refs:
            if ref and ref not in existing_ids and ref not in queued:
                queued.add(ref)
                missing.append((ref, task.project_id))
    return missing


def complete_task_graph(
    tasks: Sequence[Task],
    fetch: FetchTask,
    max_passes: int = 1,
) -> Tuple[List[Task], Set[str]]:
    """Fetch referenced-but-missing tasks and append them to the set.

    ``fetch(project_id, task_id)`` loads one task. With ``max_passes=1`` the
    tasks fetched here are not themselves scanned; higher values repeat the
    scan over each newly fetched batch until nothing new turns up. Failed
    fetches are logged and skipped, and not retried in later passes.

    Returns the completed task list and the set of ids it contains.
    """
    if max_passes < 1:
        raise ValueError("max_passes must be at least 1")

    result = list(tasks)
    existing_ids: Set[str] = {t.id for t in result}
    failed: Set[str] = set()
    frontier: Sequence[Task] = result

    for pass_no in range(1, max_passes + 1):
        missing = [m for m in find_missing(frontier, existing_ids) if m[0] not in failed]
        if not missing:
            break
        log.info("Pass %d: fetching %d missing related task(s)", pass_no, len(missing))

        fetched: List[Task] = []
        for task_id, project_id in missing:
            try:
                task = fetch(project_id, task_id)
            except (DidaAPIError, requests.RequestException, ValueError) as e:
                log.warning("Could not fetch related task %s: %s", task_id, e)
                failed.add(task_id)
                continue
            if task.id in existing_ids:
                continue
            result.append(task)
            existing_ids.add(task.id)
            fetched.append(task)
        frontier = fetched
    else:
        if find_missing(frontier, existing_ids):
            log.debug("Stopped after %d pass(es) with related tasks still missing", max_passes)

    return result, existing_ids
