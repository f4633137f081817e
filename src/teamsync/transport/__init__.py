"""Persistence and transport collaborators for TeamSync"""

from .base import WorkspaceTransport, LocalUpdateCallback, Unsubscribe
from .local import LocalFileStore
from .http import HttpRemote
from .replica import ReplicaTransport

__all__ = [
    'WorkspaceTransport',
    'LocalUpdateCallback',
    'Unsubscribe',
    'LocalFileStore',
    'HttpRemote',
    'ReplicaTransport',
]
