# src/taskdesk/core/filtering.py

"""
Filter composer.

Narrows the visible tasks by the user's facet filters (status, priority,
company) and the sidebar company selection, then derives the counts shown
above the list. Every step is a no-op when its criterion is absent.

Company narrowing applies to admins only: for a company user the company is
already fixed by the visibility filter and the sidebar is informational.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace

from ..tasks.task_models import Company, Role, Task, TaskPriority, TaskStatus
from .errors import InconsistentReference

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FilterSelection:
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    company: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, str | None]) -> FilterSelection:
        """
        Build a selection from loose key/value input (console args, form data).

        Empty values mean "no constraint". Unknown keys are ignored;
        bad status/priority values raise ValidationError.
        """
        status = (raw.get("status") or "").strip()
        priority = (raw.get("priority") or "").strip()
        company = (raw.get("company") or "").strip()
        return cls(
            status=TaskStatus.parse(status) if status else None,
            priority=TaskPriority.parse(priority) if priority else None,
            company=company or None,
        )

    def with_facet(self, key: str, value: str | None) -> FilterSelection:
        merged = {"status": self.status, "priority": self.priority, "company": self.company}
        if key not in merged:
            raise KeyError(key)
        merged[key] = value
        return FilterSelection.from_mapping({k: (str(v) if v else None) for k, v in merged.items()})

    @property
    def is_empty(self) -> bool:
        return self.status is None and self.priority is None and self.company is None


@dataclass(frozen=True, slots=True)
class TaskCounts:
    total: int = 0
    open: int = 0
    progress: int = 0
    completed: int = 0

    @classmethod
    def from_tasks(cls, tasks: Sequence[Task]) -> TaskCounts:
        by_status = Counter(t.status for t in tasks)
        return cls(
            total=len(tasks),
            open=by_status[TaskStatus.OPEN],
            progress=by_status[TaskStatus.PROGRESS],
            completed=by_status[TaskStatus.COMPLETED],
        )


@dataclass(frozen=True, slots=True)
class FilteredTasks:
    tasks: tuple[Task, ...]
    counts: TaskCounts


def effective_company(
        selection: FilterSelection,
        sidebar_company: str | None,
        role: Role | str,
) -> str | None:
    """Facet company wins over the sidebar; neither applies to non-admins."""
    if role != Role.ADMIN:
        return None
    return selection.company or sidebar_company or None


def compose_filters(
        tasks: Sequence[Task],
        selection: FilterSelection,
        *,
        sidebar_company: str | None,
        role: Role | str,
) -> FilteredTasks:
    out: Sequence[Task] = tasks

    if selection.status is not None:
        out = [t for t in out if t.status == selection.status]

    if selection.priority is not None:
        out = [t for t in out if t.priority == selection.priority]

    company_id = effective_company(selection, sidebar_company, role)
    if company_id:
        out = [t for t in out if t.company_id == company_id]

    shown = tuple(out)
    return FilteredTasks(tasks=shown, counts=TaskCounts.from_tasks(shown))


# ---- derived display helpers ----


def company_name(task: Task, companies: Sequence[Company], *, strict: bool = False) -> str:
    """
    Name of the task's company within the given snapshot.

    Unknown ids resolve to "" (the task stays listed) unless strict=True,
    in which case InconsistentReference is raised.
    """
    for c in companies:
        if c.id == task.company_id:
            return c.name
    if strict:
        raise InconsistentReference(task.id, task.company_id)
    logger.debug("Task %s references unknown company %s", task.id, task.company_id)
    return ""


def with_task_counts(companies: Sequence[Company], tasks: Sequence[Task]) -> tuple[Company, ...]:
    """
    Attach per-company task counts.

    Counts every task passed in (the caller hands over the non-archived
    snapshot), regardless of status or active filters.
    """
    per_company = Counter(t.company_id for t in tasks if not t.is_archived)
    return tuple(replace(c, task_count=per_company.get(c.id, 0)) for c in companies)


def list_title(sidebar_company: str | None, companies: Sequence[Company]) -> str:
    if sidebar_company:
        for c in companies:
            if c.id == sidebar_company:
                return f"Tasks - {c.name}"
    return "All tasks"


def show_company_filter(role: Role | str, sidebar_company: str | None) -> bool:
    """The company facet is only offered to admins without a sidebar selection."""
    return role == Role.ADMIN and not sidebar_company
