"""
Hierarchical access scope resolution.

Derives, for one viewer, the subset of a snapshot they are allowed to see.
Everything here is a pure function of its inputs: nothing is mutated and
the same (snapshot, viewer) pair always yields an equal result.
"""

from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..models import (
    Meeting,
    Notification,
    NotificationType,
    Project,
    Snapshot,
    Team,
    User,
    UserRole,
    WorkingGroup,
)
from ..utils.logging import get_logger


logger = get_logger("teamsync.access")

REPORT_OVERDUE_DAYS = 6


def build_reporting_index(users: Iterable[User]) -> Dict[str, List[str]]:
    """Map each manager id to the ids of their direct reports."""
    index: Dict[str, List[str]] = defaultdict(list)
    for user in users:
        if user.manager_id:
            index[user.manager_id].append(user.id)
    return index


def subordinate_ids(root_id: str, users: Iterable[User]) -> FrozenSet[str]:
    """
    All users reachable below ``root_id`` by following ``manager_id`` edges.

    Breadth-first with a visited set, so a cycle in the reporting lines
    terminates instead of recursing forever. ``root_id`` itself is only part
    of the result when a cycle leads back to it.
    """
    index = build_reporting_index(users)
    visited = set()
    queue = deque(index.get(root_id, ()))

    while queue:
        user_id = queue.popleft()
        if user_id in visited:
            continue
        visited.add(user_id)
        queue.extend(r for r in index.get(user_id, ()) if r not in visited)

    if root_id in visited:
        logger.warning("reporting_cycle_detected", user_id=root_id)

    return frozenset(visited)


def accessible_ids(viewer_id: str, users: Iterable[User]) -> FrozenSet[str]:
    """The viewer plus every transitive subordinate."""
    return frozenset({viewer_id}) | subordinate_ids(viewer_id, users)


class AccessScopeResolver:
    """
    Per-viewer projection of a workspace snapshot.

    Admins and anonymous sessions see everything. Other viewers see
    themselves and their reporting subtree, plus the teams, projects,
    meetings and groups those people take part in.
    """

    def resolve(self, snapshot: Snapshot, viewer: Optional[User] = None) -> Snapshot:
        """
        Filter ``snapshot`` for ``viewer``.

        Args:
            snapshot: Full workspace snapshot
            viewer: Viewing user; defaults to the snapshot's session user

        Returns:
            A new snapshot with every collection filtered. Session, theme,
            configuration and timestamp pass through unchanged.
        """
        if viewer is None:
            viewer = snapshot.current_user

        if viewer is None or viewer.role == UserRole.ADMIN:
            return snapshot

        scope = accessible_ids(viewer.id, snapshot.users)

        return snapshot.evolve(
            users=tuple(u for u in snapshot.users if u.id in scope),
            teams=self._filter_teams(snapshot.teams, scope),
            weekly_reports=tuple(r for r in snapshot.weekly_reports if r.user_id in scope),
            meetings=tuple(m for m in snapshot.meetings if self._meeting_visible(m, scope)),
            notes=tuple(n for n in snapshot.notes if n.user_id in scope),
            working_groups=tuple(
                g for g in snapshot.working_groups
                if self._group_visible(g, viewer.id, snapshot.teams)
            ),
            notifications=tuple(
                n for n in snapshot.notifications
                if self._notification_visible(n, viewer, snapshot.teams)
            ),
        )

    def _filter_teams(self, teams: Iterable[Team], scope: FrozenSet[str]) -> Tuple[Team, ...]:
        result = []
        for team in teams:
            # Whole team when its manager is the viewer or anyone below them
            if team.manager_id in scope:
                result.append(team)
                continue

            visible = tuple(p for p in team.projects if self._project_visible(p, scope))
            if visible:
                result.append(team.evolve(projects=visible))
        return tuple(result)

    @staticmethod
    def _project_visible(project: Project, scope: FrozenSet[str]) -> bool:
        if project.manager_id is not None and project.manager_id in scope:
            return True
        return any(m.user_id in scope for m in project.members)

    @staticmethod
    def _meeting_visible(meeting: Meeting, scope: FrozenSet[str]) -> bool:
        return (
            any(a in scope for a in meeting.attendees)
            or any(item.owner_id in scope for item in meeting.action_items)
        )

    @staticmethod
    def _group_visible(group: WorkingGroup, viewer_id: str, teams: Iterable[Team]) -> bool:
        if viewer_id in group.member_ids:
            return True
        if not group.project_id:
            return False

        for team in teams:
            for project in team.projects:
                if project.id != group.project_id:
                    continue
                if (
                    project.manager_id == viewer_id
                    or project.has_member(viewer_id)
                    or team.manager_id == viewer_id
                ):
                    return True
        return False

    @staticmethod
    def _notification_visible(
        notification: Notification,
        viewer: User,
        teams: Iterable[Team],
    ) -> bool:
        if not notification.data:
            return False

        if notification.type == NotificationType.PROJECT_CREATED:
            team_id = notification.data.get("teamId")
            team = next((t for t in teams if t.id == team_id), None)
            if team is None:
                return False
            return team.manager_id == viewer.id or viewer.role == UserRole.MANAGER

        if notification.type in (NotificationType.TASK_ADDED, NotificationType.TASK_CLOSED):
            # Broadcast-style awareness: not scoped by hierarchy.
            return True

        return False


def unread_count(view: Snapshot) -> int:
    """Unread notifications in an already-filtered view."""
    return sum(1 for n in view.notifications if not n.read)


def report_overdue(view: Snapshot, now: Optional[datetime] = None) -> bool:
    """
    Whether the session user owes a weekly report.

    True when the user has no report at all, or their most recently updated
    report is older than six days.
    """
    user_id = view.current_user_id
    if user_id is None:
        return False

    stamps = [
        _parse_timestamp(r.updated_at)
        for r in view.weekly_reports
        if r.user_id == user_id
    ]
    stamps = [s for s in stamps if s is not None]
    if not stamps:
        return True

    now = now or datetime.now(timezone.utc)
    age = now - max(stamps)
    return age.total_seconds() / 86400 > REPORT_OVERDUE_DAYS


def _parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    'AccessScopeResolver',
    'build_reporting_index',
    'subordinate_ids',
    'accessible_ids',
    'unread_count',
    'report_overdue',
]
