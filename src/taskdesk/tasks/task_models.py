# src/taskdesk/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..core.errors import ValidationError


class TaskStatus(StrEnum):
    """Task lifecycle status. Closed set: nothing else is stored."""

    OPEN = "open"
    PROGRESS = "progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: str | TaskStatus) -> TaskStatus:
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(f"invalid status {raw!r} (expected one of: {allowed})") from None


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, raw: str | TaskPriority) -> TaskPriority:
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise ValidationError(f"invalid priority {raw!r} (expected one of: {allowed})") from None


class Role(StrEnum):
    ADMIN = "admin"
    COMPANY_USER = "company_user"


@dataclass(frozen=True, slots=True)
class Company:
    id: str
    name: str
    is_active: bool = True
    # Derived from the task snapshot; never stored.
    task_count: int = 0


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    company_id: str

    created_by: str | None
    created_at: float
    due_date: str | None = None  # ISO date (YYYY-MM-DD)

    is_archived: bool = False
    archived_at: float | None = None

    # Denormalized by the store at read time.
    comment_count: int = 0
    attachment_count: int = 0


@dataclass(frozen=True, slots=True)
class Comment:
    id: str
    task_id: str
    user_id: str
    text: str
    created_at: float


@dataclass(frozen=True, slots=True)
class Attachment:
    id: str
    task_id: str
    user_id: str
    filename: str
    file_path: str
    file_size: int
    content_type: str | None
    created_at: float


@dataclass(frozen=True, slots=True)
class Profile:
    """A known user. The Session Context turns one into an Identity on login."""

    user_id: str
    name: str
    role: Role
    company_id: str | None = None
