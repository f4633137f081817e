"""
Per-viewer visibility over the organisational hierarchy.
"""

from .scope import (
    AccessScopeResolver,
    subordinate_ids,
    accessible_ids,
    unread_count,
    report_overdue,
)

__all__ = [
    'AccessScopeResolver',
    'subordinate_ids',
    'accessible_ids',
    'unread_count',
    'report_overdue',
]
