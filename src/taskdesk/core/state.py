# src/taskdesk/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from .board import BoardSession
from .ports import EntityStore
from .session import SessionContext


@dataclass
class AppState:
    # Settings are kept loosely typed so tests can pass a SimpleNamespace.
    settings: Any

    store: EntityStore
    session: SessionContext
    board: BoardSession

    # Serializes command handling against change-feed refreshes.
    lock: threading.RLock = field(default_factory=threading.RLock)
