"""
Reconciliation engine: keeps a Notion database in step with Dida tasks.
"""

from .correlation import CorrelationIndex
from .graph import complete_task_graph
from .pacing import FixedDelayPacer, TokenBucketPacer, build_pacer
from .reconciler import LinkResult, Reconciler, SyncResult
from .runner import RunReport, SyncAbortedError, run_back_sync_only, run_reconciliation
from .status_sync import BackSyncResult, StatusBackSync

__all__ = [
    'BackSyncResult',
    'CorrelationIndex',
    'FixedDelayPacer',
    'LinkResult',
    'Reconciler',
    'RunReport',
    'StatusBackSync',
    'SyncAbortedError',
    'SyncResult',
    'TokenBucketPacer',
    'build_pacer',
    'complete_task_graph',
    'run_back_sync_only',
    'run_reconciliation',
]
