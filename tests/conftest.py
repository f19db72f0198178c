# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdesk.cli.bootstrap import create_initial_state
from taskdesk.core.session import Identity
from taskdesk.core.state import AppState
from taskdesk.tasks.change_feed import ChangeFeed
from taskdesk.tasks.task_models import Role
from taskdesk.tasks.task_store import TaskStore

from .fakes import make_task


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskdesk-test",
        data_dir=tmp_path,
        db_path=tmp_path / "taskdesk.sqlite3",
        default_user_id=None,
        max_attachment_bytes=1024,
        console_enabled=False,
    )


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "store.sqlite3", changes=ChangeFeed())


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """AppState wired exactly like the CLI, on a tmp SQLite file."""
    return create_initial_state(settings=settings)


@pytest.fixture()
def admin() -> Identity:
    return Identity(user_id="root", role=Role.ADMIN, name="Root")


@pytest.fixture()
def user_x() -> Identity:
    return Identity(user_id="ux", role=Role.COMPANY_USER, company_id="X", name="User X")


@pytest.fixture()
def user_y() -> Identity:
    return Identity(user_id="uy", role=Role.COMPANY_USER, company_id="Y", name="User Y")


@pytest.fixture()
def three_tasks():
    """T1(open, high, X), T2(completed, low, Y), T3(open, low, X)."""
    return [
        make_task("T1", status="open", priority="high", company_id="X"),
        make_task("T2", status="completed", priority="low", company_id="Y"),
        make_task("T3", status="open", priority="low", company_id="X"),
    ]
