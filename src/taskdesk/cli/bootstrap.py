# src/taskdesk/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, session context and board session into AppState,
- seeds a first admin profile on an empty database.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.board import BoardSession
from ..core.session import SessionContext
from ..core.state import AppState
from ..tasks.change_feed import ChangeFeed
from ..tasks.task_models import Role
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)

BOOTSTRAP_ADMIN_ID = "admin"


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def _seed_admin(store: TaskStore) -> None:
    if store.list_profiles():
        return
    store.add_profile(user_id=BOOTSTRAP_ADMIN_ID, name="Administrator", role=Role.ADMIN, company_id=None)
    logger.info("Empty user table: created bootstrap admin user=%s", BOOTSTRAP_ADMIN_ID)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = TaskStore(settings.db_path, changes=ChangeFeed())
    _seed_admin(store)

    session = SessionContext(store)
    board = BoardSession(store, session)
    board.attach(store.changes)

    state = AppState(settings=settings, store=store, session=session, board=board)

    default_user = getattr(settings, "default_user_id", None)
    if default_user:
        try:
            session.login(default_user)
        except LookupError:
            logger.warning("Default user %s does not exist; starting logged out", default_user)
    board.on_identity_changed()

    return state
