# src/taskdesk/core/board.py

from __future__ import annotations

"""
Board session.

The single owner of everything a task board shows:
- the last fetched snapshot (companies + non-archived tasks + archived tasks),
- the facet filters and the sidebar company selection,
- the display mode (normal / archived).

Every change (filter, sidebar, login, change event) produces a brand new
BoardView from one snapshot; the view is swapped with a single assignment so
readers never see half-updated lists. If a fetch fails the previous view stays,
except after an identity change: the new identity is then evaluated over the
last snapshot so nothing built for another user survives.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from .errors import UnauthorizedAccess
from .filtering import (
    FilterSelection,
    TaskCounts,
    company_name,
    compose_filters,
    list_title,
    show_company_filter,
    with_task_counts,
)
from .ports import (
    ATTACHMENTS_TABLE,
    COMMENTS_TABLE,
    COMPANIES_TABLE,
    TASKS_TABLE,
    ChangeSource,
    EntityReader,
)
from .session import Identity, SessionContext
from .visibility import require_identity, resolve_visibility, visible_tasks
from ..tasks.task_models import Company, Role, Task

logger = logging.getLogger(__name__)

WATCHED_TABLES: tuple[str, ...] = (TASKS_TABLE, COMPANIES_TABLE, COMMENTS_TABLE, ATTACHMENTS_TABLE)


class DisplayMode(StrEnum):
    NORMAL = "normal"
    ARCHIVED = "archived"


@dataclass(frozen=True, slots=True)
class Snapshot:
    companies: tuple[Company, ...] = ()
    tasks: tuple[Task, ...] = ()
    archived_tasks: tuple[Task, ...] = ()


@dataclass(frozen=True, slots=True)
class BoardView:
    """Read-only result of one recomputation."""

    mode: DisplayMode = DisplayMode.NORMAL
    identity: Identity | None = None
    companies: tuple[Company, ...] = ()
    tasks: tuple[Task, ...] = ()
    counts: TaskCounts = field(default_factory=TaskCounts)
    archived_tasks: tuple[Task, ...] = ()
    selection: FilterSelection = field(default_factory=FilterSelection)
    sidebar_company: str | None = None
    title: str = "All tasks"
    show_company_filter: bool = False
    error: str | None = None

    def company_name(self, task: Task) -> str:
        return company_name(task, self.companies)


class BoardSession:
    def __init__(self, reader: EntityReader, session: SessionContext) -> None:
        self._reader = reader
        self._session = session

        self._snapshot = Snapshot()
        self._selection = FilterSelection()
        self._sidebar_company: str | None = None
        self._mode = DisplayMode.NORMAL
        self._view = BoardView()

        self._unsubscribers: list[Callable[[], None]] = []

    # ---- read side ----

    @property
    def view(self) -> BoardView:
        return self._view

    @property
    def mode(self) -> DisplayMode:
        return self._mode

    @property
    def selection(self) -> FilterSelection:
        return self._selection

    @property
    def sidebar_company(self) -> str | None:
        return self._sidebar_company

    # ---- inputs ----

    def on_identity_changed(self) -> BoardView:
        """
        Reset per-user state after login/logout and refetch.

        Company users get their own company preselected in the sidebar
        (informational only; it never narrows their list further).
        The view is always rebuilt for the new identity, even if the fetch fails.
        """
        identity = self._session.current_identity()
        self._selection = FilterSelection()
        self._mode = DisplayMode.NORMAL
        if identity is not None and identity.role == Role.COMPANY_USER:
            self._sidebar_company = identity.company_id
        else:
            self._sidebar_company = None
        if not self.refresh():
            self._recompute()
        return self._view

    def set_filters(self, selection: FilterSelection) -> BoardView:
        self._selection = selection
        self._recompute()
        return self._view

    def set_facet(self, key: str, value: str | None) -> BoardView:
        return self.set_filters(self._selection.with_facet(key, value))

    def clear_filters(self) -> BoardView:
        return self.set_filters(FilterSelection())

    def select_company(self, company_id: str | None) -> BoardView:
        """Sidebar click: always returns to the normal list."""
        self._sidebar_company = company_id or None
        self._mode = DisplayMode.NORMAL
        self._recompute()
        return self._view

    def toggle_archived(self) -> BoardView:
        if self._mode == DisplayMode.ARCHIVED:
            return self.leave_archived()
        self._mode = DisplayMode.ARCHIVED
        if not self.refresh():
            # No archived list was fetched; stay in the normal view.
            self._mode = DisplayMode.NORMAL
        return self._view

    def leave_archived(self) -> BoardView:
        self._mode = DisplayMode.NORMAL
        self._recompute()
        return self._view

    # ---- snapshot / recompute ----

    def refresh(self) -> bool:
        """
        Fetch a fresh snapshot and recompute.

        Returns False (and keeps the previous view) when the store fails.
        """
        try:
            companies = self._reader.list_companies(active_only=True)
            tasks = self._reader.list_tasks(archived=False)
            archived: list[Task] = []
            if self._mode == DisplayMode.ARCHIVED:
                archived = self._reader.list_tasks(archived=True, company_id=self._archived_company())
        except Exception:
            logger.exception("Snapshot fetch failed; keeping previous view")
            return False

        self._snapshot = Snapshot(
            companies=tuple(companies),
            tasks=tuple(tasks),
            archived_tasks=tuple(archived),
        )
        self._recompute()
        return True

    def on_change(self, event: object | None = None) -> None:
        logger.debug("Change received (%s); refreshing board", event)
        self.refresh()

    def _archived_company(self) -> str | None:
        if self._sidebar_company:
            return self._sidebar_company
        identity = self._session.current_identity()
        if identity is not None and identity.role == Role.COMPANY_USER:
            return identity.company_id
        return None

    def _recompute(self) -> None:
        snap = self._snapshot
        identity = self._session.current_identity()
        selection = self._selection
        sidebar = self._sidebar_company
        mode = self._mode

        try:
            ident = require_identity(identity)
            visible = resolve_visibility(snap.companies, snap.tasks, ident)
            archived = visible_tasks(snap.archived_tasks, ident) if mode == DisplayMode.ARCHIVED else ()
        except UnauthorizedAccess as e:
            logger.warning("Board shows nothing: %s", e)
            self._view = BoardView(
                mode=mode,
                identity=identity,
                selection=selection,
                sidebar_company=sidebar,
                error=str(e),
            )
            return

        filtered = compose_filters(visible.tasks, selection, sidebar_company=sidebar, role=ident.role)
        companies = with_task_counts(visible.companies, visible.tasks)

        self._view = BoardView(
            mode=mode,
            identity=ident,
            companies=companies,
            tasks=filtered.tasks,
            counts=filtered.counts,
            archived_tasks=archived,
            selection=selection,
            sidebar_company=sidebar,
            title=list_title(sidebar, companies),
            show_company_filter=show_company_filter(ident.role, sidebar),
        )

    # ---- change feed wiring ----

    def attach(self, changes: ChangeSource, tables: Iterable[str] = WATCHED_TABLES) -> None:
        """Refresh synchronously on every change in the given tables."""
        for table in tables:
            self._unsubscribers.append(changes.subscribe(table, self.on_change))

    def detach(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()

