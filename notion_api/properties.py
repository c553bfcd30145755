"""Mapping between Dida tasks and Notion database properties.

The property names live in :class:`PropertySchema` so a database with its own
column names (or in another language) only needs environment overrides.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Iterable, List, Optional

from dateutil import parser as date_parser
from dateutil import tz

from dida_api.data_models import Priority, Task, TaskStatus

from .data_models import Page

# Notion rejects text fragments longer than this.
TEXT_LIMIT = 2000


@dataclass
class PropertySchema:
    title: str = "Name"
    marker: str = "Source ID"
    status: str = "Status"
    project: str = "Project"
    priority: str = "Priority"
    due_date: str = "Due"
    description: str = "Description"
    parent: str = "Parent task"
    children: str = "Sub-tasks"
    status_done: str = "Done"
    status_open: str = "Not started"
    priority_high: str = "High"
    priority_medium: str = "Medium"
    priority_low: str = "Low"
    priority_none: str = "None"

    @classmethod
    def from_env(cls, getter: Callable[..., Optional[str]]) -> "PropertySchema":
        """Build a schema where each field may be overridden by an env var.

        Property names read ``NOTION_PROP_<FIELD>``. Status names read
        ``NOTION_STATUS_<NAME>`` and priority labels ``NOTION_PRIORITY_<LEVEL>``.
        """
        values = {}
        for f in fields(cls):
            if f.name.startswith("status_"):
                key = "NOTION_STATUS_" + f.name[len("status_"):].upper()
            elif f.name.startswith("priority_"):
                key = "NOTION_PRIORITY_" + f.name[len("priority_"):].upper()
            else:
                key = "NOTION_PROP_" + f.name.upper()
            values[f.name] = getter(key, f.default)
        return cls(**values)


def status_name(status: TaskStatus, schema: PropertySchema) -> str:
    return schema.status_done if status == TaskStatus.DONE else schema.status_open


def priority_label(priority: Priority, schema: PropertySchema) -> str:
    labels = {
        Priority.HIGH: schema.priority_high,
        Priority.MEDIUM: schema.priority_medium,
        Priority.LOW: schema.priority_low,
    }
    return labels.get(priority, schema.priority_none)


def truncate(text: str, limit: int = TEXT_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit]


def format_due_date(task: Task) -> Optional[str]:
    """Render a task's due date for a Notion ``date`` property.

    All-day tasks become a plain date in the task's own time zone (Dida stores
    them as midnight local time expressed in UTC); timed tasks keep their full
    ISO timestamp.
    """
    raw = task.due_date
    if not raw:
        return None
    try:
        parsed = date_parser.isoparse(raw)
    except (ValueError, OverflowError):
        return raw[:10]

    if parsed.tzinfo is not None and task.time_zone:
        zone = tz.gettz(task.time_zone)
        if zone is not None:
            parsed = parsed.astimezone(zone)
    if task.is_all_day:
        return parsed.date().isoformat()
    return parsed.isoformat()


def _text(content: str) -> List[Dict[str, Any]]:
    return [{"text": {"content": content}}]


def task_to_properties(task: Task, project_name: str, schema: PropertySchema) -> Dict[str, Any]:
    """Build the properties for a task page, without the relation fields."""
    props: Dict[str, Any] = {
        schema.title: {"title": _text(truncate(task.title))},
        schema.marker: {"rich_text": _text(task.id)},
        schema.status: {"status": {"name": status_name(task.status, schema)}},
        schema.project: {"select": {"name": project_name}},
        schema.priority: {"select": {"name": priority_label(task.priority, schema)}},
    }

    due = format_due_date(task)
    if due:
        props[schema.due_date] = {"date": {"start": due}}

    if task.content:
        props[schema.description] = {"rich_text": _text(truncate(task.content))}

    return props


def parent_relation(parent_page_id: str, schema: PropertySchema) -> Dict[str, Any]:
    return {schema.parent: {"relation": [{"id": parent_page_id}]}}


def child_relation(child_page_ids: Iterable[str], schema: PropertySchema) -> Dict[str, Any]:
    return {schema.children: {"relation": [{"id": page_id} for page_id in child_page_ids]}}


def marker_filter(source_id: str, schema: PropertySchema) -> Dict[str, Any]:
    return {"property": schema.marker, "rich_text": {"equals": source_id}}


def extract_marker(page: Page, schema: PropertySchema) -> Optional[str]:
    """Return the correlation marker stored on *page*, or ``None``."""
    prop = page.properties.get(schema.marker)
    if not isinstance(prop, dict):
        return None
    fragments = prop.get("rich_text")
    if not isinstance(fragments, list) or not fragments:
        return None
    first = fragments[0]
    if not isinstance(first, dict):
        return None
    text = first.get("plain_text")
    if text is None and isinstance(first.get("text"), dict):
        text = first["text"].get("content")
    return text or None


def extract_status(page: Page, schema: PropertySchema) -> Optional[str]:
    """Return the status name set on *page*, or ``None``."""
    prop = page.properties.get(schema.status)
    if not isinstance(prop, dict):
        return None
    status = prop.get("status")
    if not isinstance(status, dict):
        return None
    name = status.get("name")
    return name if isinstance(name, str) else None

