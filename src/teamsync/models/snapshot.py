"""
Snapshot aggregate root and notification records.

A Snapshot is the whole workspace at one instant. It is never mutated in
place: every write produces a successor via ``evolve``.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .base import WireModel
from .workspace import (
    LLMConfig,
    Meeting,
    Note,
    Team,
    User,
    UserRole,
    WeeklyReport,
    WorkingGroup,
)


THEMES = ("light", "dark")

BOOTSTRAP_ADMIN_ID = "u1"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class NotificationType(str, Enum):
    """Transitions the change notifier reports."""
    PROJECT_CREATED = "PROJECT_CREATED"
    TASK_ADDED = "TASK_ADDED"
    TASK_CLOSED = "TASK_CLOSED"
    REPORT_SUBMITTED = "REPORT_SUBMITTED"


@dataclass(frozen=True)
class Notification(WireModel):
    """
    A notification record.

    ``type`` is kept as the raw string so entries written by newer clients
    with unknown types survive a round trip; compare it against
    ``NotificationType`` members directly.
    """
    id: str
    type: str
    title: str = ""
    subtitle: str = ""
    timestamp: str = ""
    read: bool = False
    data: Optional[Dict[str, Any]] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Snapshot(WireModel):
    """The full workspace state at one instant."""
    users: Tuple[User, ...] = ()
    teams: Tuple[Team, ...] = ()
    meetings: Tuple[Meeting, ...] = ()
    weekly_reports: Tuple[WeeklyReport, ...] = ()
    notes: Tuple[Note, ...] = ()
    working_groups: Tuple[WorkingGroup, ...] = ()
    notifications: Tuple[Notification, ...] = ()
    current_user_id: Optional[str] = None
    last_updated: int = 0
    theme: str = "light"
    llm_config: LLMConfig = field(default_factory=LLMConfig)
    prompts: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Snapshot':
        """
        Decode a persisted or received workspace document.

        Older documents lack ``workingGroups``, ``notifications``, ``notes``
        or ``prompts``; every missing collection decodes to an empty tuple.
        Documents written before sessions were tracked by id carry the whole
        ``currentUser`` object instead of ``currentUserId``.
        """
        data = dict(data) if isinstance(data, dict) else data
        if isinstance(data, dict) and "currentUserId" not in data:
            legacy = data.pop("currentUser", None)
            if isinstance(legacy, dict):
                data["currentUserId"] = legacy.get("id")
        snapshot = super().from_dict(data)
        if snapshot.theme not in THEMES:
            snapshot = snapshot.evolve(theme="light")
        return snapshot

    @property
    def current_user(self) -> Optional[User]:
        if self.current_user_id is None:
            return None
        return self.find_user(self.current_user_id)

    def find_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def find_team(self, team_id: str) -> Optional[Team]:
        return next((t for t in self.teams if t.id == team_id), None)

    def find_notification(self, notification_id: str) -> Optional[Notification]:
        return next((n for n in self.notifications if n.id == notification_id), None)


def blank_workspace() -> Snapshot:
    """An empty workspace holding only the bootstrap administrator."""
    admin = User(
        id=BOOTSTRAP_ADMIN_ID,
        uid="Admin",
        first_name="System",
        last_name="Admin",
        function_title="Administrator",
        role=UserRole.ADMIN,
    )
    return Snapshot(users=(admin,))


__all__ = [
    'NotificationType',
    'Notification',
    'Snapshot',
    'blank_workspace',
    'now_ms',
    'THEMES',
    'BOOTSTRAP_ADMIN_ID',
]
