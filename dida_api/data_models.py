"""
Data models representing Dida365 / TickTick objects (tasks, projects, tokens).

Field names follow the Open API JSON (camelCase) through aliases; unknown keys
are kept so a task can be echoed back to the batch endpoint untouched.
"""
from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(IntEnum):
    OPEN = 0
    DONE = 2


class Priority(IntEnum):
    NONE = 0
    LOW = 1
    MEDIUM = 3
    HIGH = 5


class CheckItem(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    title: str = ""
    status: int = 0
    sort_order: Optional[int] = Field(None, alias="sortOrder")


class Task(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    project_id: str = Field("", alias="projectId")
    parent_id: str = Field("", alias="parentId")
    child_ids: List[str] = Field(default_factory=list, alias="childIds")
    title: str = ""
    content: str = ""
    priority: Priority = Priority.NONE
    status: TaskStatus = TaskStatus.OPEN
    due_date: Optional[str] = Field(None, alias="dueDate")
    start_date: Optional[str] = Field(None, alias="startDate")
    is_all_day: bool = Field(False, alias="isAllDay")
    time_zone: Optional[str] = Field(None, alias="timeZone")
    tags: List[str] = Field(default_factory=list)
    items: List[CheckItem] = Field(default_factory=list)
    created_time: Optional[datetime] = Field(None, alias="createdTime")
    modified_time: Optional[datetime] = Field(None, alias="modifiedTime")

    @field_validator("parent_id", "title", "content", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("child_ids", "tags", "items", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return [] if v is None else v

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v):
        """Unknown priority values (the API has used 2 and 4 in the past) map to NONE."""
        try:
            return Priority(int(v or 0))
        except ValueError:
            return Priority.NONE

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v):
        # Anything other than 2 (e.g. -1 for "won't do") counts as open.
        return TaskStatus.DONE if int(v or 0) == TaskStatus.DONE else TaskStatus.OPEN

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Project(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str = ""
    color: Optional[str] = None
    closed: Optional[bool] = None
    group_id: Optional[str] = Field(None, alias="groupId")
    kind: Optional[str] = None


class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    refresh_token: Optional[str] = None
