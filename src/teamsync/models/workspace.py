"""
Workspace entity models for TeamSync.

Every entity is immutable; edits produce new instances via ``evolve``.
Ordered collections are tuples.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .base import WireModel


class UserRole(Enum):
    """Organisational role of a user."""
    ADMIN = "Admin"
    MANAGER = "Manager"
    EMPLOYEE = "Employee"


class TaskStatus(Enum):
    """Lifecycle of a task."""
    TO_START = "To Do"
    ONGOING = "In Progress"
    BLOCKED = "Blocked"
    DONE = "Done"


class TaskPriority(Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class ProjectStatus(Enum):
    PLANNING = "Planning"
    ACTIVE = "Active"
    PAUSED = "Paused"
    DONE = "Done"


class ProjectRole(Enum):
    OWNER = "Owner"
    LEAD = "Lead"
    CONTRIBUTOR = "Contributor"


class ActionItemStatus(Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    BLOCKED = "Blocked"
    DONE = "Done"


class HealthStatus(Enum):
    """RAG indicator used by reports and external dependencies."""
    GREEN = "Green"
    AMBER = "Amber"
    RED = "Red"


@dataclass(frozen=True)
class User(WireModel):
    """A person in the organisation chart."""
    id: str
    uid: str = ""
    first_name: str = ""
    last_name: str = ""
    function_title: str = ""
    role: UserRole = UserRole.EMPLOYEE
    manager_id: Optional[str] = None
    location: Optional[str] = None
    avatar_url: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class ChecklistItem(WireModel):
    id: str
    text: str = ""
    done: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class ExternalDependency(WireModel):
    """A system or person outside the workspace a project depends on."""
    id: str
    label: str = ""
    status: HealthStatus = HealthStatus.GREEN
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Task(WireModel):
    id: str
    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.TO_START
    priority: TaskPriority = TaskPriority.MEDIUM
    assignee_id: Optional[str] = None
    eta: str = ""
    weight: float = 1.0
    is_important: bool = False
    dependencies: Tuple[str, ...] = ()
    external_dependencies: Tuple[ExternalDependency, ...] = ()
    checklist: Tuple[ChecklistItem, ...] = ()
    order: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE


@dataclass(frozen=True)
class ProjectMember(WireModel):
    user_id: str
    role: ProjectRole = ProjectRole.CONTRIBUTOR
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Project(WireModel):
    id: str
    name: str = ""
    description: str = ""
    status: ProjectStatus = ProjectStatus.PLANNING
    manager_id: Optional[str] = None
    deadline: str = ""
    members: Tuple[ProjectMember, ...] = ()
    tasks: Tuple[Task, ...] = ()
    is_important: bool = False
    doc_urls: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    external_dependencies: Tuple[ExternalDependency, ...] = ()
    additional_descriptions: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def has_member(self, user_id: str) -> bool:
        return any(m.user_id == user_id for m in self.members)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)


@dataclass(frozen=True)
class Team(WireModel):
    id: str
    name: str = ""
    manager_id: str = ""
    projects: Tuple[Project, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def find_project(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)


@dataclass(frozen=True)
class ActionItem(WireModel):
    id: str
    description: str = ""
    owner_id: str = ""
    due_date: str = ""
    status: ActionItemStatus = ActionItemStatus.OPEN
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Meeting(WireModel):
    id: str
    team_id: str = ""
    project_id: Optional[str] = None
    date: str = ""
    title: str = ""
    attendees: Tuple[str, ...] = ()
    minutes: str = ""
    action_items: Tuple[ActionItem, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class WeeklyReport(WireModel):
    id: str
    user_id: str
    week_of: str = ""
    main_success: str = ""
    main_issue: str = ""
    incident: str = ""
    orga_point: str = ""
    other_section: Optional[str] = None
    team_health: Optional[HealthStatus] = None
    project_health: Optional[HealthStatus] = None
    updated_at: str = ""
    manager_check: Optional[bool] = None
    manager_annotation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class NoteBlock(WireModel):
    """A positioned content block on a note canvas."""
    id: str
    type: str = "text"
    content: Optional[str] = None
    position: Dict[str, Any] = field(default_factory=lambda: {"x": 0, "y": 0})
    style: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class Note(WireModel):
    id: str
    user_id: str
    title: str = ""
    created_at: str = ""
    updated_at: str = ""
    is_archived: bool = False
    blocks: Tuple[NoteBlock, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class WorkingGroupSession(WireModel):
    id: str
    date: str = ""
    notes: str = ""
    action_items: Tuple[ActionItem, ...] = ()
    checklist: Tuple[ChecklistItem, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class WorkingGroup(WireModel):
    """A cross-team group; sessions are kept most recent first."""
    id: str
    title: str = ""
    member_ids: Tuple[str, ...] = ()
    project_id: Optional[str] = None
    archived: bool = False
    sessions: Tuple[WorkingGroupSession, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class LLMConfig(WireModel):
    """Client-side text-generation settings; never adopted from a remote copy."""
    provider: str = "ollama"
    base_url: Optional[str] = "http://localhost:11434"
    api_key: Optional[str] = None
    model: str = "llama3"
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


__all__ = [
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
]
