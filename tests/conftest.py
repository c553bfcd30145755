"""In-memory stand-ins for the Dida and Notion clients."""
from pathlib import Path
import itertools
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
# Make the top-level packages importable without installing the project.
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dida_api.client import DidaAPIError
from dida_api.data_models import Project, Task, TaskStatus
from notion_api.client import NotionAPIError
from notion_api.data_models import Page, QueryResponse
from notion_api.properties import PropertySchema, extract_marker, status_name
from utils.config import Settings


class FakeNotion:
    def __init__(self, schema=None, page_size=100):
        self.schema = schema or PropertySchema()
        self.page_size = page_size
        self.pages = {}
        self.queries = []
        self.created = []
        self.updates = []
        self.fail_queries_for = set()
        self.fail_creates_for = set()
        self.fail_updates_for = set()
        self._ids = itertools.count(1)

    def add_page(self, task_id, status=None, page_id=None, **extra):
        page_id = page_id or f"page-{next(self._ids)}"
        props = {self.schema.marker: {"rich_text": [{"plain_text": task_id, "text": {"content": task_id}}]}}
        if status is not None:
            props[self.schema.status] = {"status": {"name": status}}
        props.update(extra)
        self.pages[page_id] = props
        return page_id

    def query_database(self, filter=None, start_cursor=None, page_size=None):
        if filter is None:
            ordered = list(self.pages.items())
            start = int(start_cursor or 0)
            chunk = ordered[start:start + self.page_size]
            has_more = start + self.page_size < len(ordered)
            return QueryResponse(
                results=[Page(pid, dict(props)) for pid, props in chunk],
                has_more=has_more,
                next_cursor=str(start + self.page_size) if has_more else None,
            )
        wanted = filter["rich_text"]["equals"]
        self.queries.append(wanted)
        if wanted in self.fail_queries_for:
            raise NotionAPIError("query failed", status_code=500)
        results = [
            Page(pid, dict(props))
            for pid, props in self.pages.items()
            if extract_marker(Page(pid, props), self.schema) == wanted
        ]
        return QueryResponse(results=results)

    def get_all_pages(self, filter=None):
        pages, cursor = [], None
        while True:
            resp = self.query_database(start_cursor=cursor)
            pages.extend(resp.results)
            if not resp.has_more:
                return pages
            cursor = resp.next_cursor

    def create_page(self, properties):
        marker = extract_marker(Page("", properties), self.schema)
        if marker in self.fail_creates_for:
            raise NotionAPIError("create failed", status_code=400)
        page_id = f"page-{next(self._ids)}"
        self.pages[page_id] = dict(properties)
        self.created.append(page_id)
        return Page(page_id, dict(properties))

    def update_page(self, page_id, properties):
        if page_id in self.fail_updates_for:
            raise NotionAPIError("update failed", status_code=400)
        self.pages[page_id].update(properties)
        self.updates.append((page_id, properties))
        return Page(page_id, dict(self.pages[page_id]))

    # helpers for assertions
    def page_for(self, task_id):
        for pid, props in self.pages.items():
            if extract_marker(Page(pid, props), self.schema) == task_id:
                return pid
        return None

    def relation(self, page_id, name):
        prop = self.pages[page_id].get(name)
        if prop is None:
            return None
        return [r["id"] for r in prop["relation"]]

    def mark(self, task_id, done=True):
        pid = self.page_for(task_id)
        self.pages[pid][self.schema.status] = {
            "status": {"name": status_name(TaskStatus.DONE if done else TaskStatus.OPEN, self.schema)}
        }


class FakeDida:
    def __init__(self, projects=None, tasks=None, extra_tasks=None):
        self.projects = projects or []
        self.tasks = tasks or []
        # Tasks reachable through get_task only (missing from the listings).
        self.extra_tasks = {t.id: t for t in (extra_tasks or [])}
        self.fail_get_task_for = set()
        self.fail_status_for = set()
        self.fail_projects = False
        self.status_updates = []
        self.fetched = []

    def get_projects(self):
        if self.fail_projects:
            raise DidaAPIError("projects unavailable", status_code=500)
        return list(self.projects)

    def get_all_tasks(self, projects=None):
        return list(self.tasks)

    def get_task(self, project_id, task_id):
        self.fetched.append((project_id, task_id))
        if task_id in self.fail_get_task_for or task_id not in self.extra_tasks:
            raise DidaAPIError(f"task {task_id} not found", status_code=404)
        return self.extra_tasks[task_id]

    def update_task_status(self, project_id, task_id, status):
        if task_id in self.fail_status_for:
            raise DidaAPIError("update failed", status_code=500)
        self.status_updates.append((project_id, task_id, status))


class NoPacer:
    def __init__(self):
        self.writes = 0

    def after_write(self):
        self.writes += 1


def make_task(task_id, project_id="inbox", parent_id="", child_ids=None, **kwargs):
    return Task(id=task_id, projectId=project_id, parentId=parent_id, childIds=child_ids or [], title=kwargs.pop("title", task_id), **kwargs)


@pytest.fixture
def schema():
    return PropertySchema()


@pytest.fixture
def notion(schema):
    return FakeNotion(schema)


@pytest.fixture
def pacer():
    return NoPacer()


@pytest.fixture
def settings(schema):
    return Settings(
        dida_client_id="cid",
        dida_client_secret="secret",
        notion_token="ntok",
        notion_database_id="db",
        write_delay=0,
        max_graph_passes=3,
        schema=schema,
    )


@pytest.fixture
def scenario_dida():
    """One project "Work" plus inbox, a root task t1 and its child t2."""
    return FakeDida(
        projects=[Project(id="p1", name="Work")],
        tasks=[
            make_task("t1", project_id="inbox"),
            make_task("t2", project_id="p1", parent_id="t1"),
        ],
    )
