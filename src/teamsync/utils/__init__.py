"""Utility modules for TeamSync."""

from .logging import setup_logging, get_logger
from .errors import (
    TeamSyncError,
    ConfigurationError,
    StorageError,
    SnapshotFormatError,
    ValidationError,
    error_context,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'TeamSyncError',
    'ConfigurationError',
    'StorageError',
    'SnapshotFormatError',
    'ValidationError',
    'error_context',
]
