# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field

from taskdesk.core.session import Identity
from taskdesk.tasks.task_models import Company, Profile, Task, TaskPriority, TaskStatus


def make_task(
    task_id: str,
    *,
    status: str = "open",
    priority: str = "medium",
    company_id: str = "X",
    archived: bool = False,
) -> Task:
    return Task(
        id=task_id,
        title=f"title {task_id}",
        description="",
        status=TaskStatus(status),
        priority=TaskPriority(priority),
        company_id=company_id,
        created_by="tester",
        created_at=0.0,
        is_archived=archived,
    )


def make_companies(*ids: str) -> list[Company]:
    return [Company(id=cid, name=f"Company {cid}") for cid in ids]


@dataclass(slots=True)
class FakeEntityReader:
    """
    In-memory EntityReader for board tests.

    - Serves whatever lists the test assigns
    - Counts fetches; can be switched to fail
    """

    companies: list[Company] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    fail: bool = False
    fetches: int = 0
    archived_queries: list[str | None] = field(default_factory=list)

    def list_companies(self, *, active_only: bool = True) -> list[Company]:
        if self.fail:
            raise RuntimeError("backend unavailable")
        self.fetches += 1
        return [c for c in self.companies if c.is_active or not active_only]

    def list_tasks(self, *, archived: bool = False, company_id: str | None = None) -> list[Task]:
        if self.fail:
            raise RuntimeError("backend unavailable")
        if archived:
            self.archived_queries.append(company_id)
        return [
            t
            for t in self.tasks
            if t.is_archived == archived and (company_id is None or t.company_id == company_id)
        ]


class FakeProfiles:
    """ProfileRepo backed by a dict."""

    def __init__(self, *profiles: Profile) -> None:
        self.profiles = {p.user_id: p for p in profiles}

    def get_profile(self, user_id: str) -> Profile | None:
        return self.profiles.get(user_id)


class StaticSession:
    """Session Context stand-in returning a fixed (possibly malformed) identity."""

    def __init__(self, identity: Identity | None) -> None:
        self.identity = identity

    def current_identity(self) -> Identity | None:
        return self.identity
