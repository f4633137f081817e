"""
Diff-based change detection and notification generation.

The diff is a pure function from (previous, next) team versions to a list
of typed transition events. ``ChangeNotifier`` turns those events into
notification records and folds them into the snapshot produced by the same
mutation, so notifications are generated exactly once per transition.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
import uuid

from ..models import (
    Notification,
    NotificationType,
    Project,
    Snapshot,
    Task,
    Team,
    TaskStatus,
    WeeklyReport,
)
from ..utils.logging import get_logger


logger = get_logger("teamsync.notify")

SYSTEM_ACTOR = "System"
UNKNOWN_REPORTER = "User"


@dataclass(frozen=True)
class TransitionEvent:
    """A meaningful change detected between two versions of a team."""
    kind: NotificationType
    team: Team
    project: Project
    task: Optional[Task] = None


def diff_team(original: Optional[Team], updated: Team) -> List[TransitionEvent]:
    """
    Detect transitions between two versions of a team.

    - a project absent from ``original`` yields PROJECT_CREATED
    - a task absent from its (pre-existing) project yields TASK_ADDED
    - a task moving from any non-DONE status to DONE yields TASK_CLOSED

    Every other change, including DONE back to an open status, yields
    nothing. A team with no previous version yields nothing either.
    """
    if original is None:
        return []

    events: List[TransitionEvent] = []
    for project in updated.projects:
        before = original.find_project(project.id)
        if before is None:
            events.append(TransitionEvent(NotificationType.PROJECT_CREATED, updated, project))
            continue

        for task in project.tasks:
            previous = before.find_task(task.id)
            if previous is None:
                events.append(TransitionEvent(NotificationType.TASK_ADDED, updated, project, task))
            elif task.status == TaskStatus.DONE and previous.status != TaskStatus.DONE:
                events.append(TransitionEvent(NotificationType.TASK_CLOSED, updated, project, task))

    return events


def reattach_hidden_projects(original: Team, updated: Team) -> Team:
    """
    Keep projects the editor could not see.

    The incoming team only carries the projects visible to its editor;
    anything stored but absent from the payload is appended back after the
    visible ones, unchanged.
    """
    visible_ids = {p.id for p in updated.projects}
    hidden = tuple(p for p in original.projects if p.id not in visible_ids)
    if not hidden:
        return updated
    return updated.evolve(projects=updated.projects + hidden)


def mark_read(snapshot: Snapshot, notification_id: str) -> Snapshot:
    """Flag one notification as read; order and length never change."""
    return snapshot.evolve(notifications=tuple(
        n.evolve(read=True) if n.id == notification_id and not n.read else n
        for n in snapshot.notifications
    ))


def mark_all_read(snapshot: Snapshot) -> Snapshot:
    """Flag every notification as read; order and length never change."""
    return snapshot.evolve(notifications=tuple(
        n if n.read else n.evolve(read=True)
        for n in snapshot.notifications
    ))


class ChangeNotifier:
    """Generates notifications for team and report writes."""

    def __init__(
        self,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            id_factory: Produces unique notification ids
            clock: Returns the current time for notification timestamps
        """
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def apply_team_update(self, snapshot: Snapshot, team: Team) -> Snapshot:
        """
        Install ``team`` into ``snapshot`` and prepend its notifications.

        New teams are appended without notifications. Existing teams are
        replaced in place, with hidden projects re-attached.
        """
        original = snapshot.find_team(team.id)

        if original is None:
            logger.debug("team_created", team_id=team.id)
            return snapshot.evolve(teams=snapshot.teams + (team,))

        actor = self._actor_name(snapshot)
        events = diff_team(original, team)
        notifications = tuple(self.build_notification(e, actor) for e in events)
        final_team = reattach_hidden_projects(original, team)

        if notifications:
            logger.info(
                "team_transitions_detected",
                team_id=team.id,
                events=[e.kind.value for e in events],
            )

        return snapshot.evolve(
            teams=tuple(final_team if t.id == team.id else t for t in snapshot.teams),
            notifications=notifications + snapshot.notifications,
        )

    def apply_report_update(self, snapshot: Snapshot, report: WeeklyReport) -> Snapshot:
        """Upsert ``report`` and prepend exactly one REPORT_SUBMITTED."""
        reports = snapshot.weekly_reports
        if any(r.id == report.id for r in reports):
            reports = tuple(report if r.id == report.id else r for r in reports)
        else:
            reports = reports + (report,)

        owner = snapshot.find_user(report.user_id)
        actor = owner.display_name if owner else UNKNOWN_REPORTER

        notification = self._make(
            NotificationType.REPORT_SUBMITTED,
            title="Weekly Report Submitted",
            subtitle=f"{actor} updated their report for {report.week_of}",
            data={"reportId": report.id, "userId": report.user_id, "actorName": actor},
        )

        return snapshot.evolve(
            weekly_reports=reports,
            notifications=(notification,) + snapshot.notifications,
        )

    def build_notification(self, event: TransitionEvent, actor_name: str) -> Notification:
        """Render one transition event as a notification record."""
        project = event.project

        if event.kind == NotificationType.PROJECT_CREATED:
            return self._make(
                event.kind,
                title="New Project Created",
                subtitle=f'"{project.name}" added to {event.team.name} by {actor_name}',
                data={"projectId": project.id, "teamId": event.team.id, "actorName": actor_name},
            )

        task = event.task
        if event.kind == NotificationType.TASK_ADDED:
            title = "New Task Added"
            subtitle = f'"{task.title}" added in {project.name}'
        else:
            title = "Task Completed"
            subtitle = f'"{task.title}" marked as Done by {actor_name}'

        return self._make(
            event.kind,
            title=title,
            subtitle=subtitle,
            data={
                "projectId": project.id,
                "taskId": task.id,
                "teamId": event.team.id,
                "actorName": actor_name,
            },
        )

    def _make(
        self,
        kind: NotificationType,
        title: str,
        subtitle: str,
        data: Dict[str, Any],
    ) -> Notification:
        return Notification(
            id=self._id_factory(),
            type=kind.value,
            title=title,
            subtitle=subtitle,
            timestamp=self._clock().isoformat(),
            read=False,
            data=data,
        )

    @staticmethod
    def _actor_name(snapshot: Snapshot) -> str:
        user = snapshot.current_user
        return user.display_name if user else SYSTEM_ACTOR


__all__ = [
    'TransitionEvent',
    'ChangeNotifier',
    'diff_team',
    'reattach_hidden_projects',
    'mark_read',
    'mark_all_read',
]
