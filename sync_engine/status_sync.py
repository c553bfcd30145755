"""Push completion from Notion back to Dida.

The policy is one-directional: a page marked done closes its Dida task, but a
task done in Dida and open in Notion is only reported. Dida stays the
authority for reopening.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

import requests

from dida_api.client import DidaAPIError, DidaClient
from dida_api.data_models import Task, TaskStatus
from notion_api.data_models import Page
from notion_api.properties import PropertySchema, extract_marker, extract_status
from utils.logger import get_logger

log = get_logger(__name__)


@dataclass
class BackSyncResult:
    completed: int = 0
    failed: int = 0
    completed_ids: List[str] = field(default_factory=list)
    failed_ids: List[str] = field(default_factory=list)
    inconsistent_ids: List[str] = field(default_factory=list)

    @property
    def inconsistencies(self) -> int:
        return len(self.inconsistent_ids)


class StatusBackSync:
    def __init__(self, dida: DidaClient, schema: PropertySchema):
        self.dida = dida
        self.schema = schema

    def pages_by_marker(self, pages: Iterable[Page]) -> Dict[str, Page]:
        by_marker: Dict[str, Page] = {}
        for page in pages:
            marker = extract_marker(page, self.schema)
            if marker and marker not in by_marker:
                by_marker[marker] = page
        return by_marker

    def run(self, tasks: Sequence[Task], pages: Iterable[Page]) -> BackSyncResult:
        result = BackSyncResult()
        tasks_by_id = {t.id: t for t in tasks}

        for task_id, page in self.pages_by_marker(pages).items():
            task = tasks_by_id.get(task_id)
            if task is None:
                # Gone from Dida (deleted or completed upstream); never re-created.
                continue
            status = extract_status(page, self.schema)
            if status is None:
                continue

            page_done = status == self.schema.status_done
            if page_done and not task.is_done:
                try:
                    self.dida.update_task_status(task.project_id, task.id, TaskStatus.DONE)
                except (DidaAPIError, requests.RequestException) as e:
                    log.error("Failed to mark %s done in Dida: %s", task.title, e)
                    result.failed += 1
                    result.failed_ids.append(task.id)
                    continue
                log.info("Marked done in Dida: %s", task.title)
                result.completed += 1
                result.completed_ids.append(task.id)
            elif not page_done and task.is_done:
                log.warning(
                    "Status mismatch for %s: done in Dida but %r in Notion", task.title, status
                )
                result.inconsistent_ids.append(task.id)
        return result
