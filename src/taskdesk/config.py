# src/taskdesk/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every field has a local default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKDESK"

DEFAULT_MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Console ----
    console_enabled: bool
    default_user_id: str | None

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Limits ----
    max_attachment_bytes: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdesk").strip() or "taskdesk"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        default_user_id = _env(_k("DEFAULT_USER"), "").strip() or None

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdesk"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskdesk.sqlite3")

        max_attachment_bytes = _env_int(_k("MAX_ATTACHMENT_BYTES"), DEFAULT_MAX_ATTACHMENT_BYTES)
        if max_attachment_bytes <= 0:
            max_attachment_bytes = DEFAULT_MAX_ATTACHMENT_BYTES

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            default_user_id=default_user_id,
            data_dir=data_dir,
            db_path=db_path,
            max_attachment_bytes=max_attachment_bytes,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
