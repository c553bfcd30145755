"""
Dida365 / TickTick API layer package.
Implements the Open API client and the OAuth handshake used to reach it.
"""

from .client import DidaAPIError, DidaClient, NotAuthenticatedError, INBOX_PROJECT_ID
from .data_models import Priority, Project, Task, TaskStatus, TokenResponse
from .oauth import DidaOAuth, OAuthError

__all__ = [
    'DidaAPIError',
    'DidaClient',
    'DidaOAuth',
    'INBOX_PROJECT_ID',
    'NotAuthenticatedError',
    'OAuthError',
    'Priority',
    'Project',
    'Task',
    'TaskStatus',
    'TokenResponse',
]
