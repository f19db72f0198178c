# src/taskdesk/core/visibility.py

"""
Visibility filter.

Decides which companies and tasks an identity may ever see, before any
user-chosen filter applies. Pure projection over the given sequences:
order is preserved, nothing is mutated.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..tasks.task_models import Company, Role, Task
from .errors import UnauthorizedAccess
from .session import Identity


@dataclass(frozen=True, slots=True)
class Visibility:
    companies: tuple[Company, ...]
    tasks: tuple[Task, ...]


def require_identity(identity: Identity | None) -> Identity:
    """
    Validate the precondition of every decision-layer call.

    Raises UnauthorizedAccess when the identity is absent, its role is not
    one of the known roles, or a company user carries no company.
    """
    if identity is None:
        raise UnauthorizedAccess("no authenticated identity")

    try:
        role = Role(identity.role)
    except ValueError:
        raise UnauthorizedAccess(f"unknown role {identity.role!r} for user {identity.user_id!r}") from None

    if role == Role.COMPANY_USER and not identity.company_id:
        raise UnauthorizedAccess(f"company user {identity.user_id!r} has no company")

    return identity


def visible_companies(companies: Sequence[Company], identity: Identity | None) -> tuple[Company, ...]:
    ident = require_identity(identity)
    if ident.is_admin:
        return tuple(companies)
    return tuple(c for c in companies if c.id == ident.company_id)


def visible_tasks(tasks: Sequence[Task], identity: Identity | None) -> tuple[Task, ...]:
    ident = require_identity(identity)
    if ident.is_admin:
        return tuple(tasks)
    return tuple(t for t in tasks if t.company_id == ident.company_id)


def resolve_visibility(
        companies: Sequence[Company],
        tasks: Sequence[Task],
        identity: Identity | None,
) -> Visibility:
    """Both projections from one snapshot, validated once."""
    ident = require_identity(identity)
    return Visibility(
        companies=visible_companies(companies, ident),
        tasks=visible_tasks(tasks, ident),
    )


def can_edit_task(identity: Identity | None, task: Task) -> bool:
    """Admins edit everything; company users edit their own company's tasks."""
    ident = require_identity(identity)
    return ident.is_admin or ident.company_id == task.company_id
