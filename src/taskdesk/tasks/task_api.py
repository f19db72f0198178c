# src/taskdesk/tasks/task_api.py

"""
Write operations issued by the view layer.

Each helper checks the acting identity first, then writes through the store.
The store publishes the change event; nothing here touches the board.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from pathlib import PurePosixPath

from ..core.errors import NotFound, PermissionDenied, ValidationError
from ..core.ports import EntityStore
from ..core.session import Identity
from ..core.visibility import can_edit_task, require_identity
from ..config import DEFAULT_MAX_ATTACHMENT_BYTES
from .task_models import Role, Task, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)


def _require_admin(identity: Identity | None, action: str) -> Identity:
    ident = require_identity(identity)
    if not ident.is_admin:
        raise PermissionDenied(f"only admins can {action}")
    return ident


def _load_task(store: EntityStore, task_id: str) -> Task:
    task = store.get_task(task_id)
    if task is None:
        raise NotFound(f"unknown task {task_id!r}")
    return task


def _editable_task(store: EntityStore, identity: Identity | None, task_id: str) -> Task:
    task = _load_task(store, task_id)
    if not can_edit_task(identity, task):
        raise PermissionDenied(f"task {task_id} belongs to another company")
    return task


def _normalize_due_date(raw: str | None) -> str | None:
    if raw is None or not raw.strip():
        return None
    try:
        return date.fromisoformat(raw.strip()).isoformat()
    except ValueError:
        raise ValidationError(f"invalid due date {raw!r} (expected YYYY-MM-DD)") from None


# ---- tasks ----


def create_task(
        store: EntityStore,
        identity: Identity | None,
        *,
        title: str,
        description: str = "",
        priority: str | TaskPriority = TaskPriority.MEDIUM,
        company_id: str | None = None,
        due_date: str | None = None,
) -> str:
    """
    Create a task.

    Company users always file into their own company (company_id is ignored);
    admins must name an existing, active company.
    """
    ident = require_identity(identity)
    if not title or not title.strip():
        raise ValidationError("title is required")
    prio = TaskPriority.parse(priority)
    due = _normalize_due_date(due_date)

    target = company_id if ident.is_admin else ident.company_id
    if not target:
        raise ValidationError("company is required")
    company = store.get_company(target)
    if company is None or not company.is_active:
        raise ValidationError(f"unknown company {target!r}")

    task_id = store.add_task(
        title=title,
        description=description,
        company_id=company.id,
        created_by=ident.user_id,
        priority=prio,
        due_date=due,
    )
    logger.info("Task created id=%s company=%s by=%s", task_id, company.id, ident.user_id)
    return task_id


def update_task_status(
        store: EntityStore,
        identity: Identity | None,
        task_id: str,
        status: str | TaskStatus,
) -> TaskStatus:
    new_status = TaskStatus.parse(status)
    task = _editable_task(store, identity, task_id)
    if task.status != new_status:
        store.update_task_fields(task_id, status=new_status)
        logger.info("Task %s status %s -> %s", task_id, task.status, new_status)
    return new_status


def update_task_priority(
        store: EntityStore,
        identity: Identity | None,
        task_id: str,
        priority: str | TaskPriority,
) -> TaskPriority:
    new_priority = TaskPriority.parse(priority)
    _require_admin(identity, "change priority")
    task = _load_task(store, task_id)
    if task.priority != new_priority:
        store.update_task_fields(task_id, priority=new_priority)
        logger.info("Task %s priority %s -> %s", task_id, task.priority, new_priority)
    return new_priority


def archive_task(store: EntityStore, identity: Identity | None, task_id: str, *, archived: bool = True) -> None:
    task = _editable_task(store, identity, task_id)
    if task.is_archived == archived:
        return
    store.update_task_fields(task_id, is_archived=archived)
    logger.info("Task %s %s", task_id, "archived" if archived else "restored")


# ---- comments / attachments ----


def add_comment(store: EntityStore, identity: Identity | None, task_id: str, text: str) -> str:
    ident = require_identity(identity)
    if not text or not text.strip():
        raise ValidationError("comment is empty")
    _editable_task(store, ident, task_id)
    return store.add_comment(task_id=task_id, user_id=ident.user_id, text=text)


def attachment_path(task_id: str, filename: str, *, now_ts: float | None = None) -> str:
    """Object-store key for an upload: <task_id>/<epoch_ms>.<ext>."""
    if now_ts is None:
        now_ts = time.time()
    ext = PurePosixPath(filename).suffix.lstrip(".") or "bin"
    return f"{task_id}/{int(now_ts * 1000)}.{ext}"


def attach_file(
        store: EntityStore,
        identity: Identity | None,
        task_id: str,
        *,
        filename: str,
        file_size: int,
        content_type: str | None = None,
        max_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
) -> str:
    """
    Record an attachment for a file the caller has already uploaded elsewhere.

    Only metadata is stored; the returned id names the attachment record.
    """
    ident = require_identity(identity)
    name = (filename or "").strip()
    if not name:
        raise ValidationError("filename is required")
    if file_size < 0:
        raise ValidationError("file size cannot be negative")
    if file_size > max_bytes:
        raise ValidationError(f"file is too large ({file_size} bytes, limit {max_bytes})")

    _editable_task(store, ident, task_id)
    return store.add_attachment(
        task_id=task_id,
        user_id=ident.user_id,
        filename=name,
        file_path=attachment_path(task_id, name),
        file_size=file_size,
        content_type=content_type,
    )


# ---- administration ----


def create_company(store: EntityStore, identity: Identity | None, name: str) -> str:
    _require_admin(identity, "create companies")
    if not name or not name.strip():
        raise ValidationError("company name is required")
    company_id = store.add_company(name=name)
    logger.info("Company created id=%s name=%s", company_id, name.strip())
    return company_id


def deactivate_company(store: EntityStore, identity: Identity | None, company_id: str) -> None:
    """Soft delete: the company disappears from listings, its tasks stay."""
    _require_admin(identity, "deactivate companies")
    if store.get_company(company_id) is None:
        raise NotFound(f"unknown company {company_id!r}")
    store.set_company_active(company_id, False)
    logger.info("Company deactivated id=%s", company_id)


def create_profile(
        store: EntityStore,
        identity: Identity | None,
        *,
        user_id: str,
        name: str,
        role: str | Role,
        company_id: str | None = None,
) -> None:
    _require_admin(identity, "create users")
    try:
        new_role = Role(str(role).strip().lower())
    except ValueError:
        raise ValidationError(f"invalid role {role!r}") from None
    if not user_id or not user_id.strip():
        raise ValidationError("user id is required")
    if store.get_profile(user_id.strip()) is not None:
        raise ValidationError(f"user {user_id!r} already exists")

    if new_role == Role.COMPANY_USER:
        if not company_id:
            raise ValidationError("company users need a company")
        if store.get_company(company_id) is None:
            raise ValidationError(f"unknown company {company_id!r}")

    store.add_profile(
        user_id=user_id.strip(),
        name=(name or user_id).strip(),
        role=new_role,
        company_id=company_id if new_role == Role.COMPANY_USER else None,
    )
    logger.info("User created id=%s role=%s company=%s", user_id, new_role, company_id)


def remove_profile(store: EntityStore, identity: Identity | None, user_id: str) -> None:
    ident = _require_admin(identity, "remove users")
    if user_id == ident.user_id:
        raise ValidationError("you cannot remove yourself")
    if store.get_profile(user_id) is None:
        raise NotFound(f"unknown user {user_id!r}")
    store.delete_profile(user_id)
    logger.info("User removed id=%s", user_id)
