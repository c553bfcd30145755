"""
Data models representing Notion objects returned by the database endpoints.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Page:
    id: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Page":
        return cls(id=data["id"], properties=data.get("properties") or {})

    def to_dict(self):
        return {"id": self.id, "properties": self.properties}


@dataclass
class QueryResponse:
    results: List[Page] = field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "QueryResponse":
        return cls(
            results=[Page.from_api(p) for p in data.get("results") or []],
            has_more=bool(data.get("has_more")),
            next_cursor=data.get("next_cursor"),
        )
