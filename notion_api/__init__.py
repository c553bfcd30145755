"""
Notion API layer package.
Implements the database client and the task <-> page property mapping.
"""

from .client import NotionAPIError, NotionClient, RateLimitedError
from .data_models import Page, QueryResponse
from .properties import PropertySchema

__all__ = [
    'NotionAPIError',
    'NotionClient',
    'Page',
    'PropertySchema',
    'QueryResponse',
    'RateLimitedError',
]
