# src/veloce/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .task_models import (
    RecurringType,
    SubTask,
    SubTaskStatus,
    Task,
    TaskType,
    utcnow,
)

logger = logging.getLogger(__name__)


def _ts(dt: datetime | None) -> float | None:
    return dt.timestamp() if dt is not None else None


def _dt(raw: Any) -> datetime | None:
    if raw is None:
        return None
    return datetime.fromtimestamp(float(raw), tz=UTC)


class TaskStore:
    """
    SQLite task store (tasks + their ordered sub-tasks).

    The schema is intentionally simple and migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS subtasks (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    title TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    order_index INTEGER NOT NULL DEFAULT 0
                )
                """
            )

            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s.%s", table, name)

            add_col("tasks", "star_rating", "INTEGER NOT NULL DEFAULT 2")
            add_col("tasks", "estimated_minutes", "INTEGER")
            add_col("tasks", "scheduled_time", "REAL")
            add_col("tasks", "notes", "TEXT")
            add_col("tasks", "task_type", "TEXT NOT NULL DEFAULT 'coordinate'")
            add_col("tasks", "recurring_type", "TEXT NOT NULL DEFAULT 'once'")
            add_col("tasks", "recurring_days", "TEXT")
            add_col("tasks", "recurring_end_date", "REAL")
            add_col("tasks", "calendar_event_id", "TEXT")
            add_col("tasks", "completed_at", "REAL")

            add_col("subtasks", "estimated_minutes", "INTEGER")
            add_col("subtasks", "ai_reasoning", "TEXT")
            add_col("subtasks", "completed_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_scheduled ON tasks(scheduled_time)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_subtasks_task ON subtasks(task_id, order_index)"
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _days_to_str(days: list[int] | None) -> str | None:
        if days is None:
            return None
        return json.dumps(sorted(int(d) for d in days))

    @staticmethod
    def _str_to_days(s: str | None) -> list[int] | None:
        if not s:
            return None
        try:
            val = json.loads(s)
        except json.JSONDecodeError:
            return None
        if not isinstance(val, list):
            return None
        return [int(d) for d in val if isinstance(d, int)]

    @staticmethod
    def _row_to_sub_task(row: sqlite3.Row) -> SubTask:
        return SubTask(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            title=str(row["title"] or ""),
            status=SubTaskStatus.from_db(row["status"]),
            order_index=int(row["order_index"] or 0),
            estimated_minutes=row["estimated_minutes"],
            ai_reasoning=row["ai_reasoning"],
            completed_at=_dt(row["completed_at"]),
        )

    def _row_to_task(self, row: sqlite3.Row, subtasks: list[SubTask]) -> Task:
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            is_completed=bool(row["is_completed"]),
            star_rating=int(row["star_rating"] or 2),
            estimated_minutes=row["estimated_minutes"],
            scheduled_time=_dt(row["scheduled_time"]),
            notes=row["notes"],
            task_type=TaskType.from_db(row["task_type"]),
            recurring_type=RecurringType.from_db(row["recurring_type"]),
            recurring_days=self._str_to_days(row["recurring_days"]),
            recurring_end_date=_dt(row["recurring_end_date"]),
            calendar_event_id=row["calendar_event_id"],
            created_at=_dt(row["created_at"]) or utcnow(),
            updated_at=_dt(row["updated_at"]) or utcnow(),
            completed_at=_dt(row["completed_at"]),
            subtasks=subtasks,
        )

    def _load_sub_tasks(self, conn: sqlite3.Connection, task_id: str) -> list[SubTask]:
        cur = conn.execute(
            "SELECT * FROM subtasks WHERE task_id = ? ORDER BY order_index ASC, rowid ASC",
            (task_id,),
        )
        return [self._row_to_sub_task(r) for r in cur.fetchall()]

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        title: str,
        notes: str | None = None,
        estimated_minutes: int | None = None,
        task_type: TaskType = TaskType.COORDINATE,
        star_rating: int = 2,
    ) -> Task:
        if not title or not title.strip():
            raise ValueError("title is required")

        task = Task(
            title=title.strip(),
            notes=notes,
            estimated_minutes=estimated_minutes,
            task_type=task_type,
            star_rating=max(1, min(3, int(star_rating))),
        )
        self.save_task(task)
        logger.debug("Task added id=%s type=%s", task.id, task.task_type.value)
        return task

    def save_task(self, task: Task) -> None:
        """Upsert the task row and replace its sub-task rows."""
        if not task.title or not task.title.strip():
            raise ValueError("title is required")

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, title, is_completed, created_at, updated_at,
                    star_rating, estimated_minutes, scheduled_time, notes, task_type,
                    recurring_type, recurring_days, recurring_end_date,
                    calendar_event_id, completed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title = excluded.title,
                    is_completed = excluded.is_completed,
                    updated_at = excluded.updated_at,
                    star_rating = excluded.star_rating,
                    estimated_minutes = excluded.estimated_minutes,
                    scheduled_time = excluded.scheduled_time,
                    notes = excluded.notes,
                    task_type = excluded.task_type,
                    recurring_type = excluded.recurring_type,
                    recurring_days = excluded.recurring_days,
                    recurring_end_date = excluded.recurring_end_date,
                    calendar_event_id = excluded.calendar_event_id,
                    completed_at = excluded.completed_at
                """,
                (
                    task.id,
                    task.title.strip(),
                    int(task.is_completed),
                    _ts(task.created_at),
                    _ts(task.updated_at),
                    int(task.star_rating),
                    task.estimated_minutes,
                    _ts(task.scheduled_time),
                    task.notes,
                    task.task_type.value,
                    task.recurring_type.value,
                    self._days_to_str(task.recurring_days),
                    _ts(task.recurring_end_date),
                    task.calendar_event_id,
                    _ts(task.completed_at),
                ),
            )
            conn.execute("DELETE FROM subtasks WHERE task_id = ?", (task.id,))
            conn.executemany(
                """
                INSERT INTO subtasks(
                    id, task_id, title, status, order_index,
                    estimated_minutes, ai_reasoning, completed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        st.id,
                        task.id,
                        st.title,
                        st.status.value,
                        int(st.order_index),
                        st.estimated_minutes,
                        st.ai_reasoning,
                        _ts(st.completed_at),
                    )
                    for st in task.subtasks
                ],
            )
            conn.commit()
            logger.debug("Task saved id=%s subtasks=%d", task.id, len(task.subtasks))
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                return None
            return self._row_to_task(row, self._load_sub_tasks(conn, task_id))
        finally:
            conn.close()

    def find_task_by_title(self, title: str) -> Task | None:
        """Most recently updated task with this exact title (case-insensitive)."""
        title = (title or "").strip()
        if not title:
            return None
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE lower(title) = lower(?)
                ORDER BY updated_at DESC
                    LIMIT 1
                """,
                (title,),
            ).fetchone()
            if row is None:
                return None
            return self._row_to_task(row, self._load_sub_tasks(conn, str(row["id"])))
        finally:
            conn.close()

    def list_tasks(self, *, include_completed: bool = False, limit: int = 50) -> list[Task]:
        conn = self._get_conn()
        try:
            where = "" if include_completed else "WHERE is_completed = 0"
            rows = conn.execute(
                f"""
                SELECT *
                FROM tasks
                {where}
                ORDER BY COALESCE(scheduled_time, created_at) ASC, created_at ASC
                    LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
            return [self._row_to_task(r, self._load_sub_tasks(conn, str(r["id"]))) for r in rows]
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> bool:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM subtasks WHERE task_id = ?", (task_id,))
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
