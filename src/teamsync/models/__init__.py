"""
Workspace data models for TeamSync.
"""

from .base import WireModel
from .workspace import (
    UserRole,
    TaskStatus,
    TaskPriority,
    ProjectStatus,
    ProjectRole,
    ActionItemStatus,
    HealthStatus,
    User,
    ChecklistItem,
    ExternalDependency,
    Task,
    ProjectMember,
    Project,
    Team,
    ActionItem,
    Meeting,
    WeeklyReport,
    NoteBlock,
    Note,
    WorkingGroupSession,
    WorkingGroup,
    LLMConfig,
)
from .snapshot import (
    NotificationType,
    Notification,
    Snapshot,
    blank_workspace,
    now_ms,
)

__all__ = [
    'WireModel',
    'UserRole',
    'TaskStatus',
    'TaskPriority',
    'ProjectStatus',
    'ProjectRole',
    'ActionItemStatus',
    'HealthStatus',
    'User',
    'ChecklistItem',
    'ExternalDependency',
    'Task',
    'ProjectMember',
    'Project',
    'Team',
    'ActionItem',
    'Meeting',
    'WeeklyReport',
    'NoteBlock',
    'Note',
    'WorkingGroupSession',
    'WorkingGroup',
    'LLMConfig',
    'NotificationType',
    'Notification',
    'Snapshot',
    'blank_workspace',
    'now_ms',
]
