"""
Reconciliation between the local replica and the central copy.
"""

from .store import StateStore
from .merge import is_newer, merge_remote, next_timestamp
from .coordinator import SyncCoordinator, CoordinatorState, SyncError

__all__ = [
    'StateStore',
    'SyncCoordinator',
    'CoordinatorState',
    'SyncError',
    'is_newer',
    'merge_remote',
    'next_timestamp',
]
