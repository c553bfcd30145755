"""Three-phase reconciliation of Dida tasks into a Notion database.

1. Upsert: every task gets exactly one page, found through the
   :class:`~sync_engine.correlation.CorrelationIndex` or created. The
   resulting task id -> page id map drives the next two phases.
2. Parent links: each sub-task page points at its parent page.
3. Child lists: each parent page's child relation is overwritten with the
   pages of its children, in task-set order.

A task that fails phase 1 is counted and left out of phases 2 and 3; link
failures are counted separately and never abort the run.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

import requests

from dida_api.data_models import Task
from notion_api.client import NotionAPIError, NotionClient
from notion_api.properties import (
    PropertySchema,
    child_relation,
    parent_relation,
    task_to_properties,
)
from utils.logger import get_logger

from .correlation import CorrelationIndex

log = get_logger(__name__)

DEFAULT_PROJECT_NAME = "Inbox"

_REQUEST_ERRORS = (NotionAPIError, requests.RequestException)

CorrelationMap = Dict[str, str]


@dataclass
class LinkResult:
    succeeded: int = 0
    failed: int = 0


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    parent_links: LinkResult = field(default_factory=LinkResult)
    child_links: LinkResult = field(default_factory=LinkResult)
    correlation: CorrelationMap = field(default_factory=dict)


class Reconciler:
    def __init__(
        self,
        notion: NotionClient,
        index: CorrelationIndex,
        pacer,
        schema: PropertySchema,
        project_names: Mapping[str, str],
        default_project_name: str = DEFAULT_PROJECT_NAME,
    ):
        self.notion = notion
        self.index = index
        self.pacer = pacer
        self.schema = schema
        self.project_names = project_names
        self.default_project_name = default_project_name

    def project_name(self, task: Task) -> str:
        return self.project_names.get(task.project_id) or self.default_project_name

    def run(self, tasks: Sequence[Task]) -> SyncResult:
        result = SyncResult()
        log.info("Phase 1: syncing %d task(s)", len(tasks))
        result.correlation = self.upsert_tasks(tasks, result)
        log.info("Phase 2: linking sub-tasks to their parents")
        result.parent_links = self.link_parents(tasks, result.correlation)
        log.info("Phase 3: updating child lists on parent tasks")
        result.child_links = self.link_children(tasks, result.correlation)
        return result

    def upsert_tasks(self, tasks: Sequence[Task], result: SyncResult) -> CorrelationMap:
        correlation: CorrelationMap = {}
        total = len(tasks)
        for i, task in enumerate(tasks, start=1):
            progress = f"[{i}/{total}]"
            try:
                existing = self.index.find_by_source_id(task.id)
            except _REQUEST_ERRORS as e:
                log.error("%s Lookup failed: %s - %s", progress, task.title, e)
                result.failed += 1
                continue

            props = task_to_properties(task, self.project_name(task), self.schema)
            try:
                if existing is not None:
                    page = self.notion.update_page(existing.id, props)
                    result.updated += 1
                    log.info("%s Updated: %s", progress, task.title)
                else:
                    page = self.notion.create_page(props)
                    self.index.remember(task.id, page)
                    result.created += 1
                    log.info("%s Created: %s", progress, task.title)
                correlation[task.id] = existing.id if existing is not None else page.id
            except _REQUEST_ERRORS as e:
                action = "Update" if existing is not None else "Create"
                log.error("%s %s failed: %s - %s", progress, action, task.title, e)
                result.failed += 1
            finally:
                self.pacer.after_write()
        return correlation

    def link_parents(self, tasks: Sequence[Task], correlation: Mapping[str, str]) -> LinkResult:
        links = LinkResult()
        for task in tasks:
            if not task.parent_id:
                continue
            page_id = correlation.get(task.id)
            parent_page_id = correlation.get(task.parent_id)
            if page_id is None or parent_page_id is None:
                log.debug("Leaving %s unlinked: parent %s has no page", task.title, task.parent_id)
                continue
            if self._write(page_id, parent_relation(parent_page_id, self.schema)):
                links.succeeded += 1
                log.info("Linked: %s -> parent", task.title)
            else:
                links.failed += 1
        return links

    def collect_children(self, tasks: Sequence[Task], correlation: Mapping[str, str]) -> Dict[str, List[str]]:
        """Map parent task id -> child page ids, in scan order without repeats."""
        children: Dict[str, List[str]] = {}
        for task in tasks:
            if not task.parent_id:
                continue
            child_page_id = correlation.get(task.id)
            if child_page_id is None:
                continue
            siblings = children.setdefault(task.parent_id, [])
            if child_page_id not in siblings:
                siblings.append(child_page_id)
        return children

    def link_children(self, tasks: Sequence[Task], correlation: Mapping[str, str]) -> LinkResult:
        links = LinkResult()
        for parent_id, child_page_ids in self.collect_children(tasks, correlation).items():
            parent_page_id = correlation.get(parent_id)
            if parent_page_id is None:
                continue
            if self._write(parent_page_id, child_relation(child_page_ids, self.schema)):
                links.succeeded += 1
                log.info("Updated child list of %s (%d sub-task(s))", parent_id, len(child_page_ids))
            else:
                links.failed += 1
        return links

    def _write(self, page_id: str, props: dict) -> bool:
        try:
            self.notion.update_page(page_id, props)
            return True
        except _REQUEST_ERRORS as e:
            log.error("Updating relations on page %s failed: %s", page_id, e)
            return False
        finally:
            self.pacer.after_write()

