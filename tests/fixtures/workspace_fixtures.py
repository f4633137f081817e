"""
Workspace test fixtures.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from teamsync.models import (
    ActionItem,
    Meeting,
    Note,
    Notification,
    NotificationType,
    Project,
    ProjectMember,
    ProjectRole,
    Snapshot,
    Task,
    TaskStatus,
    Team,
    User,
    UserRole,
    WeeklyReport,
    WorkingGroup,
    now_ms,
)
from teamsync.transport import WorkspaceTransport


class WorkspaceFixtures:
    """Fixtures for a small organisation.

    Reporting lines: admin; alice (manager) <- bob (manager) <- carol;
    dave reports to nobody.
    """

    @staticmethod
    def users() -> List[User]:
        return [
            User(id="admin", uid="ADM", first_name="Ada", last_name="Admin", role=UserRole.ADMIN),
            User(id="alice", uid="ALI", first_name="Alice", last_name="Martin", role=UserRole.MANAGER),
            User(id="bob", uid="BOB", first_name="Bob", last_name="Durand",
                 role=UserRole.MANAGER, manager_id="alice"),
            User(id="carol", uid="CAR", first_name="Carol", last_name="Petit",
                 role=UserRole.EMPLOYEE, manager_id="bob"),
            User(id="dave", uid="DAV", first_name="Dave", last_name="Leroy",
                 role=UserRole.EMPLOYEE),
        ]

    @staticmethod
    def task(task_id: str, status: TaskStatus = TaskStatus.TO_START, **kwargs) -> Task:
        return Task(id=task_id, title=kwargs.pop("title", f"Task {task_id}"), status=status, **kwargs)

    @staticmethod
    def project(project_id: str, manager_id: Optional[str] = None, members=(), tasks=(), **kwargs) -> Project:
        return Project(
            id=project_id,
            name=kwargs.pop("name", f"Project {project_id}"),
            manager_id=manager_id,
            members=tuple(ProjectMember(user_id=m, role=ProjectRole.CONTRIBUTOR) for m in members),
            tasks=tuple(tasks),
            **kwargs
        )

    @staticmethod
    def teams() -> List[Team]:
        f = WorkspaceFixtures
        return [
            Team(id="t-alpha", name="Alpha", manager_id="bob", projects=(
                f.project("p-apollo", manager_id="bob", tasks=[f.task("k1"), f.task("k2")]),
            )),
            Team(id="t-ops", name="Ops", manager_id="dave", projects=(
                f.project("p-visible", manager_id="dave", members=["carol"]),
                f.project("p-hidden", manager_id="dave"),
            )),
            Team(id="t-closed", name="Closed", manager_id="dave", projects=(
                f.project("p-secret", manager_id="dave"),
            )),
        ]

    @staticmethod
    def meetings() -> List[Meeting]:
        return [
            Meeting(id="m-1", team_id="t-alpha", title="Sync", attendees=("carol",)),
            Meeting(id="m-2", team_id="t-ops", title="Ops review", attendees=("dave",),
                    action_items=(ActionItem(id="a-1", owner_id="bob"),)),
            Meeting(id="m-3", team_id="t-closed", title="Closed", attendees=("dave",)),
        ]

    @staticmethod
    def reports(now: Optional[datetime] = None) -> List[WeeklyReport]:
        now = now or datetime.now(timezone.utc)
        return [
            WeeklyReport(id="r-carol", user_id="carol", week_of="2026-W40",
                         updated_at=(now - timedelta(days=2)).isoformat()),
            WeeklyReport(id="r-dave", user_id="dave", week_of="2026-W40",
                         updated_at=(now - timedelta(days=1)).isoformat()),
        ]

    @staticmethod
    def notes() -> List[Note]:
        return [
            Note(id="n-carol", user_id="carol", title="Carol's note"),
            Note(id="n-dave", user_id="dave", title="Dave's note"),
        ]

    @staticmethod
    def groups() -> List[WorkingGroup]:
        return [
            WorkingGroup(id="g-member", title="Members", member_ids=("alice",)),
            WorkingGroup(id="g-project", title="Apollo group", project_id="p-apollo"),
            WorkingGroup(id="g-other", title="Ops group", member_ids=("dave",), project_id="p-secret"),
        ]

    @staticmethod
    def notification(
        notification_id: str,
        kind: NotificationType,
        data: Optional[dict] = None,
        read: bool = False,
    ) -> Notification:
        return Notification(
            id=notification_id,
            type=kind.value,
            title=kind.value,
            timestamp="2026-10-01T00:00:00+00:00",
            read=read,
            data=data,
        )

    @staticmethod
    def snapshot(current_user_id: Optional[str] = "alice", last_updated: int = 1000, **kwargs) -> Snapshot:
        f = WorkspaceFixtures
        defaults = dict(
            users=tuple(f.users()),
            teams=tuple(f.teams()),
            meetings=tuple(f.meetings()),
            weekly_reports=tuple(f.reports()),
            notes=tuple(f.notes()),
            working_groups=tuple(f.groups()),
        )
        defaults.update(kwargs)
        return Snapshot(current_user_id=current_user_id, last_updated=last_updated, **defaults)


class FakeTransport(WorkspaceTransport):
    """In-memory transport.

    ``remote`` holds the central copy; ``None`` means unreachable. Pushes
    behave like the central server: they stamp and store the snapshot.
    """

    def __init__(self, local: Optional[Snapshot] = None, remote: Optional[Snapshot] = None):
        self.local = local if local is not None else Snapshot()
        self.remote = remote
        self.saved: List[Snapshot] = []
        self.pushed: List[Snapshot] = []
        self.fetch_count = 0
        self.accept_push = True
        self.before_fetch_resolves: Optional[Callable[[], None]] = None
        self.listeners: List[Callable[[Snapshot], None]] = []
        self.closed = False
        self._ids = itertools.count(1)

    def load_local(self) -> Snapshot:
        return self.local

    def save_local(self, snapshot: Snapshot) -> None:
        self.saved.append(snapshot)
        self.local = snapshot

    async def fetch_remote(self) -> Optional[Snapshot]:
        self.fetch_count += 1
        if self.before_fetch_resolves is not None:
            self.before_fetch_resolves()
        return self.remote

    async def push_remote(self, snapshot: Snapshot) -> Optional[int]:
        self.pushed.append(snapshot)
        if not self.accept_push:
            return None
        previous = self.remote.last_updated if self.remote is not None else 0
        stamp = max(now_ms(), previous + 1, snapshot.last_updated)
        self.remote = snapshot.evolve(last_updated=stamp)
        return stamp

    def subscribe_local_updates(self, callback):
        self.listeners.append(callback)

        def unsubscribe():
            self.listeners.remove(callback)

        return unsubscribe

    def emit_local(self, snapshot: Snapshot) -> None:
        for callback in list(self.listeners):
            callback(snapshot)

    def generate_id(self) -> str:
        return f"id-{next(self._ids)}"

    async def close(self) -> None:
        self.closed = True
