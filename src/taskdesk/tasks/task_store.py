# src/taskdesk/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
import uuid
from pathlib import Path
from typing import Any

from ..core.ports import (
    ATTACHMENTS_TABLE,
    COMMENTS_TABLE,
    COMPANIES_TABLE,
    PROFILES_TABLE,
    TASKS_TABLE,
)
from .change_feed import ChangeFeed
from .task_models import (
    Attachment,
    Comment,
    Company,
    Profile,
    Role,
    Task,
    TaskPriority,
    TaskStatus,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class TaskStore:
    """
    SQLite entity store (companies, tasks, comments, attachments, profiles).

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing task columns
    - add columns with ALTER TABLE only when needed

    Every committed write publishes a ChangeEvent for its table on `changes`.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskdesk.sqlite3", *, changes: ChangeFeed | None = None) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._changes = changes if changes is not None else ChangeFeed()
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    @property
    def changes(self) -> ChangeFeed:
        return self._changes

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS companies (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'open'
                        CHECK (status IN ('open','progress','completed')),
                    priority TEXT NOT NULL DEFAULT 'medium'
                        CHECK (priority IN ('high','medium','low')),
                    due_date TEXT,
                    company_id TEXT NOT NULL REFERENCES companies(id),
                    created_by TEXT,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_comments (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    user_id TEXT NOT NULL,
                    comment TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_attachments (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    user_id TEXT NOT NULL,
                    filename TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    file_size INTEGER NOT NULL,
                    content_type TEXT,
                    created_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    user_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    user_type TEXT NOT NULL CHECK (user_type IN ('admin','company_user')),
                    company_id TEXT REFERENCES companies(id)
                )
                """
            )

            # Migrations (safe): archive columns came after the first schema.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("is_archived", "INTEGER NOT NULL DEFAULT 0")
            add_col("archived_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_archived_company ON tasks(is_archived, company_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_comments_task ON task_comments(task_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_attachments_task ON task_attachments(task_id)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_company(row: sqlite3.Row) -> Company:
        return Company(
            id=str(row["id"]),
            name=str(row["name"] or ""),
            is_active=bool(row["is_active"]),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        keys = row.keys()
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            status=TaskStatus(row["status"]),
            priority=TaskPriority(row["priority"]),
            company_id=str(row["company_id"]),
            created_by=row["created_by"],
            created_at=float(row["created_at"] or 0.0),
            due_date=row["due_date"],
            is_archived=bool(row["is_archived"]),
            archived_at=float(row["archived_at"]) if row["archived_at"] is not None else None,
            comment_count=int(row["comment_count"]) if "comment_count" in keys else 0,
            attachment_count=int(row["attachment_count"]) if "attachment_count" in keys else 0,
        )

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> Profile:
        return Profile(
            user_id=str(row["user_id"]),
            name=str(row["name"] or ""),
            role=Role(row["user_type"]),
            company_id=row["company_id"],
        )

    def _write(self, table: str, kind: str, sql: str, params: tuple[Any, ...] | list[Any]) -> int:
        """Run one write statement, commit, publish. Returns rowcount."""
        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            rowcount = cur.rowcount
        finally:
            conn.close()
        self._changes.publish(table, kind)
        return rowcount

    # ---- companies ----

    def list_companies(self, *, active_only: bool = True) -> list[Company]:
        sql = "SELECT id, name, is_active FROM companies"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY name COLLATE NOCASE ASC"

        conn = self._get_conn()
        try:
            return [self._row_to_company(r) for r in conn.execute(sql).fetchall()]
        finally:
            conn.close()

    def get_company(self, company_id: str) -> Company | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT id, name, is_active FROM companies WHERE id = ?", (company_id,)
            ).fetchone()
            return self._row_to_company(row) if row else None
        finally:
            conn.close()

    def add_company(self, *, name: str) -> str:
        if not name or not name.strip():
            raise ValueError("name is required")
        company_id = _new_id()
        self._write(
            COMPANIES_TABLE,
            "insert",
            "INSERT INTO companies(id, name, is_active, created_at) VALUES (?, ?, 1, ?)",
            (company_id, name.strip(), time.time()),
        )
        logger.debug("Company added id=%s name=%s", company_id, name)
        return company_id

    def set_company_active(self, company_id: str, active: bool) -> None:
        self._write(
            COMPANIES_TABLE,
            "update",
            "UPDATE companies SET is_active = ? WHERE id = ?",
            (1 if active else 0, company_id),
        )

    # ---- tasks ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def list_tasks(self, *, archived: bool = False, company_id: str | None = None) -> list[Task]:
        """
        Tasks with denormalized comment/attachment counts, newest first.

        archived selects the archived or the default (non-archived) set; they never mix.
        """
        sql = """
            SELECT t.*,
                   (SELECT COUNT(*) FROM task_comments c WHERE c.task_id = t.id) AS comment_count,
                   (SELECT COUNT(*) FROM task_attachments a WHERE a.task_id = t.id) AS attachment_count
            FROM tasks t
            WHERE t.is_archived = ?
        """
        params: list[Any] = [1 if archived else 0]
        if company_id:
            sql += " AND t.company_id = ?"
            params.append(company_id)
        sql += " ORDER BY t.created_at DESC, t.rowid DESC"

        conn = self._get_conn()
        try:
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT t.*,
                       (SELECT COUNT(*) FROM task_comments c WHERE c.task_id = t.id) AS comment_count,
                       (SELECT COUNT(*) FROM task_attachments a WHERE a.task_id = t.id) AS attachment_count
                FROM tasks t
                WHERE t.id = ?
                """,
                (task_id,),
            ).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

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
    ) -> str:
        if not title or not title.strip():
            raise ValueError("title is required")
        if not company_id:
            raise ValueError("company_id is required")

        task_id = _new_id()
        self._write(
            TASKS_TABLE,
            "insert",
            """
            INSERT INTO tasks(
                id, title, description, status, priority,
                due_date, company_id, created_by, created_at, is_archived
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0)
            """,
            (
                task_id,
                title.strip(),
                (description or "").strip(),
                TaskStatus(status).value,
                TaskPriority(priority).value,
                due_date,
                company_id,
                created_by,
                time.time(),
            ),
        )
        logger.debug(
            "Task added id=%s company=%s status=%s priority=%s",
            task_id,
            company_id,
            status,
            priority,
        )
        return task_id

    def update_task_fields(
        self,
        task_id: str,
        *,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        is_archived: bool | None = None,
    ) -> None:
        fields: list[str] = []
        params: list[Any] = []

        if status is not None:
            fields.append("status = ?")
            params.append(TaskStatus(status).value)

        if priority is not None:
            fields.append("priority = ?")
            params.append(TaskPriority(priority).value)

        if is_archived is not None:
            fields.append("is_archived = ?")
            params.append(1 if is_archived else 0)
            fields.append("archived_at = ?")
            params.append(time.time() if is_archived else None)

        if not fields:
            return

        params.append(task_id)
        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?"
        self._write(TASKS_TABLE, "update", sql, params)

    # ---- comments / attachments ----

    def add_comment(self, *, task_id: str, user_id: str, text: str) -> str:
        if not text or not text.strip():
            raise ValueError("comment text is required")
        comment_id = _new_id()
        self._write(
            COMMENTS_TABLE,
            "insert",
            "INSERT INTO task_comments(id, task_id, user_id, comment, created_at) VALUES (?, ?, ?, ?, ?)",
            (comment_id, task_id, user_id, text.strip(), time.time()),
        )
        return comment_id

    def list_comments(self, task_id: str) -> list[Comment]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM task_comments WHERE task_id = ? ORDER BY created_at ASC, rowid ASC",
                (task_id,),
            ).fetchall()
            return [
                Comment(
                    id=str(r["id"]),
                    task_id=str(r["task_id"]),
                    user_id=str(r["user_id"]),
                    text=str(r["comment"]),
                    created_at=float(r["created_at"]),
                )
                for r in rows
            ]
        finally:
            conn.close()

    def add_attachment(
        self,
        *,
        task_id: str,
        user_id: str,
        filename: str,
        file_path: str,
        file_size: int,
        content_type: str | None,
    ) -> str:
        attachment_id = _new_id()
        self._write(
            ATTACHMENTS_TABLE,
            "insert",
            """
            INSERT INTO task_attachments(
                id, task_id, user_id, filename, file_path, file_size, content_type, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (attachment_id, task_id, user_id, filename, file_path, int(file_size), content_type, time.time()),
        )
        return attachment_id

    def list_attachments(self, task_id: str) -> list[Attachment]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM task_attachments WHERE task_id = ? ORDER BY created_at DESC, rowid DESC",
                (task_id,),
            ).fetchall()
            return [
                Attachment(
                    id=str(r["id"]),
                    task_id=str(r["task_id"]),
                    user_id=str(r["user_id"]),
                    filename=str(r["filename"]),
                    file_path=str(r["file_path"]),
                    file_size=int(r["file_size"]),
                    content_type=r["content_type"],
                    created_at=float(r["created_at"]),
                )
                for r in rows
            ]
        finally:
            conn.close()

    # ---- profiles ----

    def get_profile(self, user_id: str) -> Profile | None:
        if not user_id:
            return None
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
            return self._row_to_profile(row) if row else None
        finally:
            conn.close()

    def list_profiles(self) -> list[Profile]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM profiles ORDER BY name COLLATE NOCASE ASC").fetchall()
            return [self._row_to_profile(r) for r in rows]
        finally:
            conn.close()

    def add_profile(self, *, user_id: str, name: str, role: Role, company_id: str | None) -> None:
        self._write(
            PROFILES_TABLE,
            "insert",
            "INSERT INTO profiles(user_id, name, user_type, company_id) VALUES (?, ?, ?, ?)",
            (user_id, name, Role(role).value, company_id if role == Role.COMPANY_USER else None),
        )

    def delete_profile(self, user_id: str) -> None:
        self._write(PROFILES_TABLE, "delete", "DELETE FROM profiles WHERE user_id = ?", (user_id,))
