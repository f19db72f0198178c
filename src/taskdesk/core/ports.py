# src/taskdesk/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The board session and the task API depend on Protocols instead of the SQLite store.
This keeps the store swappable (a hosted backend, an in-memory fake in tests).
"""

from collections.abc import Callable
from typing import Protocol

from ..tasks.task_models import (
    Attachment,
    Comment,
    Company,
    Profile,
    Role,
    Task,
    TaskPriority,
    TaskStatus,
)

TASKS_TABLE = "tasks"
COMPANIES_TABLE = "companies"
COMMENTS_TABLE = "task_comments"
ATTACHMENTS_TABLE = "task_attachments"
PROFILES_TABLE = "profiles"


class ChangeSource(Protocol):
    """Content-free change notifications keyed by table name."""

    def subscribe(self, table: str, handler: Callable[[object], None]) -> Callable[[], None]: ...


class ProfileRepo(Protocol):
    def get_profile(self, user_id: str) -> Profile | None: ...


class EntityReader(Protocol):
    """The reads the board session needs."""

    def list_companies(self, *, active_only: bool = True) -> list[Company]: ...
    def list_tasks(self, *, archived: bool = False, company_id: str | None = None) -> list[Task]: ...


class EntityStore(EntityReader, ProfileRepo, Protocol):
    """Everything the task API writes through."""

    @property
    def changes(self) -> ChangeSource: ...

    def get_company(self, company_id: str) -> Company | None: ...
    def add_company(self, *, name: str) -> str: ...
    def set_company_active(self, company_id: str, active: bool) -> None: ...

    def get_task(self, task_id: str) -> Task | None: ...
    def add_task(
            self,
            *,
            title: str,
            description: str,
            company_id: str,
            created_by: str | None,
            priority: TaskPriority = TaskPriority.MEDIUM,
            status: TaskStatus = TaskStatus.OPEN,
            due_date: str | None = None,
    ) -> str: ...
    def update_task_fields(
            self,
            task_id: str,
            *,
            status: TaskStatus | None = None,
            priority: TaskPriority | None = None,
            is_archived: bool | None = None,
    ) -> None: ...

    def add_comment(self, *, task_id: str, user_id: str, text: str) -> str: ...
    def list_comments(self, task_id: str) -> list[Comment]: ...
    def add_attachment(
            self,
            *,
            task_id: str,
            user_id: str,
            filename: str,
            file_path: str,
            file_size: int,
            content_type: str | None,
    ) -> str: ...
    def list_attachments(self, task_id: str) -> list[Attachment]: ...

    def list_profiles(self) -> list[Profile]: ...
    def add_profile(self, *, user_id: str, name: str, role: Role, company_id: str | None) -> None: ...
    def delete_profile(self, user_id: str) -> None: ...
