"""Find the Notion page that belongs to a Dida task.

Pages carry the Dida task id in the marker property. The store does not
enforce uniqueness on that column; uniqueness holds only because the
reconciler always looks a task up before creating its page.
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from notion_api.client import NotionClient
from notion_api.data_models import Page
from notion_api.properties import PropertySchema, extract_marker, marker_filter
from utils.logger import get_logger

log = get_logger(__name__)


class CorrelationIndex:
    """Reverse lookup from a source task id to its target page.

    By default every lookup is a filtered database query. After :meth:`prime`
    the index answers from a full scan held in memory instead, and a miss
    means the page does not exist.
    """

    def __init__(self, notion: NotionClient, schema: PropertySchema):
        self.notion = notion
        self.schema = schema
        self._pages: Optional[Dict[str, Page]] = None

    @property
    def primed(self) -> bool:
        return self._pages is not None

    def prime(self, pages: Iterable[Page]) -> int:
        """Index *pages* by marker; returns the number of distinct markers."""
        index: Dict[str, Page] = {}
        for page in pages:
            marker = extract_marker(page, self.schema)
            if not marker:
                continue
            if marker in index:
                log.warning(
                    "Duplicate pages for task %s: keeping %s, ignoring %s",
                    marker, index[marker].id, page.id,
                )
                continue
            index[marker] = page
        self._pages = index
        return len(index)

    def remember(self, source_id: str, page: Page) -> None:
        if self._pages is not None:
            self._pages.setdefault(source_id, page)

    def find_by_source_id(self, source_id: str) -> Optional[Page]:
        """Return the page carrying *source_id*, or ``None`` if there is none.

        Query failures propagate: the caller cannot tell "absent" from
        "unknown" in that case.
        """
        if self._pages is not None:
            return self._pages.get(source_id)

        result = self.notion.query_database(filter=marker_filter(source_id, self.schema))
        if not result.results:
            return None
        if len(result.results) > 1:
            log.warning(
                "Found %d pages for task %s, using %s",
                len(result.results), source_id, result.results[0].id,
            )
        return result.results[0]
