"""
Change detection and notification generation.
"""

from .changes import (
    TransitionEvent,
    ChangeNotifier,
    diff_team,
    reattach_hidden_projects,
    mark_read,
    mark_all_read,
)

__all__ = [
    'TransitionEvent',
    'ChangeNotifier',
    'diff_team',
    'reattach_hidden_projects',
    'mark_read',
    'mark_all_read',
]
