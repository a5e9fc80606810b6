import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import field_validator
from sqlmodel import JSON, Field, SQLModel


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    COMPLETED = "completed"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NoteType(str, Enum):
    NOTE = "note"
    CHECKLIST = "checklist"
    BOOKMARK = "bookmark"
    DOCUMENT = "document"


class NoteFormat(str, Enum):
    PLAIN = "plain"
    MARKDOWN = "markdown"
    HTML = "html"


class EventType(str, Enum):
    APPOINTMENT = "appointment"
    MEETING = "meeting"
    REMINDER = "reminder"
    DEADLINE = "deadline"
    PERSONAL = "personal"


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


COLOR_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def check_color(value: Optional[str]) -> Optional[str]:
    if value is not None and not COLOR_RE.match(value):
        raise ValueError("color must be a hex color such as #3498db")
    return value


# ---- users ----


class UserBase(SQLModel):
    email: str = Field(max_length=255)
    username: str = Field(min_length=3, max_length=50)
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    timezone: str = "UTC"

    @field_validator("email")
    @classmethod
    def _check_email(cls, value):
        if not EMAIL_RE.match(value):
            raise ValueError("email must be a valid address")
        return value.lower()

    @field_validator("username")
    @classmethod
    def _check_username(cls, value):
        if not USERNAME_RE.match(value):
            raise ValueError("username may only contain letters, digits and underscores")
        return value


class User(UserBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    username: str = Field(unique=True, index=True, max_length=50)
    password_hash: Optional[str] = None
    is_active: bool = True
    preferences: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserCreate(UserBase):
    preferences: dict[str, Any] = Field(default_factory=dict)


class UserUpdate(SQLModel):
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    timezone: Optional[str] = None


class UserRead(UserBase):
    id: int
    is_active: bool
    preferences: dict[str, Any]
    created_at: datetime


# ---- projects ----


class ProjectBase(SQLModel):
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    color: str = "#3498db"
    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: Priority = Priority.MEDIUM
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    parent_project_id: Optional[int] = None
    settings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_date", "due_date")
    @classmethod
    def _to_utc(cls, value):
        return as_naive_utc(value)

    @field_validator("color")
    @classmethod
    def _check_color(cls, value):
        return check_color(value)


class Project(ProjectBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    parent_project_id: Optional[int] = Field(default=None, foreign_key="project.id", index=True)
    settings: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[Priority] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    parent_project_id: Optional[int] = None
    settings: Optional[dict[str, Any]] = None

    @field_validator("start_date", "due_date")
    @classmethod
    def _to_utc(cls, value):
        return as_naive_utc(value)

    @field_validator("color")
    @classmethod
    def _check_color(cls, value):
        return check_color(value)


class ProjectRead(ProjectBase):
    id: int
    user_id: int
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class ProjectDetail(ProjectRead):
    sub_project_ids: list[int] = []


class ProjectStats(SQLModel):
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    in_progress_tasks: int
    total_notes: int
    total_events: int
    total_sub_projects: int
    completion_percentage: int


# ---- tasks ----


class TaskBase(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    estimated_time: Optional[int] = Field(default=None, ge=0)  # minutes
    actual_time: Optional[int] = Field(default=None, ge=0)  # minutes
    project_id: Optional[int] = None
    parent_task_id: Optional[int] = None
    order: int = 0
    tags: list[str] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("due_date")
    @classmethod
    def _to_utc(cls, value):
        return as_naive_utc(value)


class Task(TaskBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    project_id: Optional[int] = Field(
        default=None, foreign_key="project.id", index=True, ondelete="SET NULL"
    )
    parent_task_id: Optional[int] = Field(default=None, foreign_key="task.id", index=True)
    due_date: Optional[datetime] = Field(default=None, index=True)
    tags: list[str] = Field(default_factory=list, sa_type=JSON)
    meta: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TaskCreate(TaskBase):
    pass


class TaskUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    estimated_time: Optional[int] = Field(default=None, ge=0)
    actual_time: Optional[int] = Field(default=None, ge=0)
    project_id: Optional[int] = None
    parent_task_id: Optional[int] = None
    order: Optional[int] = None
    tags: Optional[list[str]] = None
    meta: Optional[dict[str, Any]] = None

    @field_validator("due_date")
    @classmethod
    def _to_utc(cls, value):
        return as_naive_utc(value)


class TaskRead(TaskBase):
    id: int
    user_id: int
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class TaskDetail(TaskRead):
    sub_task_ids: list[int] = []


class TaskOrderItem(SQLModel):
    id: int
    order: int


class TaskReorder(SQLModel):
    task_orders: list[TaskOrderItem]


class TaskStats(SQLModel):
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    overdue: int = 0
    high_priority: int = 0


# ---- notes ----


class NoteBase(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    content: Optional[str] = None
    type: NoteType = NoteType.NOTE
    format: NoteFormat = NoteFormat.PLAIN
    is_archived: bool = False
    is_favorite: bool = False
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    tags: list[str] = Field(default_factory=list)
    attachments: list[Any] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)


class Note(NoteBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    project_id: Optional[int] = Field(
        default=None, foreign_key="project.id", index=True, ondelete="SET NULL"
    )
    task_id: Optional[int] = Field(default=None, foreign_key="task.id", index=True, ondelete="SET NULL")
    tags: list[str] = Field(default_factory=list, sa_type=JSON)
    attachments: list[Any] = Field(default_factory=list, sa_type=JSON)
    meta: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class NoteCreate(NoteBase):
    pass


class NoteUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = None
    type: Optional[NoteType] = None
    format: Optional[NoteFormat] = None
    is_archived: Optional[bool] = None
    is_favorite: Optional[bool] = None
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    tags: Optional[list[str]] = None
    attachments: Optional[list[Any]] = None
    meta: Optional[dict[str, Any]] = None


class NoteRead(NoteBase):
    id: int
    user_id: int
    created_at: datetime
    updated_at: datetime


# ---- events ----


class EventBase(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_all_day: bool = False
    location: Optional[str] = Field(default=None, max_length=255)
    type: EventType = EventType.APPOINTMENT
    status: EventStatus = EventStatus.SCHEDULED
    priority: Priority = Priority.MEDIUM
    color: str = "#3498db"
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    recurrence: Optional[dict[str, Any]] = None
    reminders: list[Any] = Field(default_factory=list)
    attendees: list[Any] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_date", "end_date")
    @classmethod
    def _to_utc(cls, value):
        return as_naive_utc(value)

    @field_validator("color")
    @classmethod
    def _check_color(cls, value):
        return check_color(value)


class Event(EventBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, ondelete="CASCADE")
    project_id: Optional[int] = Field(
        default=None, foreign_key="project.id", index=True, ondelete="SET NULL"
    )
    task_id: Optional[int] = Field(default=None, foreign_key="task.id", index=True, ondelete="SET NULL")
    start_date: datetime = Field(index=True)
    recurrence: Optional[dict[str, Any]] = Field(default=None, sa_type=JSON)
    reminders: list[Any] = Field(default_factory=list, sa_type=JSON)
    attendees: list[Any] = Field(default_factory=list, sa_type=JSON)
    meta: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class EventCreate(EventBase):
    pass


class EventUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_all_day: Optional[bool] = None
    location: Optional[str] = Field(default=None, max_length=255)
    type: Optional[EventType] = None
    status: Optional[EventStatus] = None
    priority: Optional[Priority] = None
    color: Optional[str] = None
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    recurrence: Optional[dict[str, Any]] = None
    reminders: Optional[list[Any]] = None
    attendees: Optional[list[Any]] = None
    meta: Optional[dict[str, Any]] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _to_utc(cls, value):
        return as_naive_utc(value)

    @field_validator("color")
    @classmethod
    def _check_color(cls, value):
        return check_color(value)


class EventRead(EventBase):
    id: int
    user_id: int
    created_at: datetime
    updated_at: datetime


class UserStats(SQLModel):
    total_projects: int
    total_tasks: int
    total_notes: int
    total_events: int
    completed_tasks: int
    pending_tasks: int
    in_progress_tasks: int
