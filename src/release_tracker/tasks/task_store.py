# src/release_tracker/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class TaskStore:
    """
    SQLite task store.

    Owns the `tasks` table of the shared release tracker database. The reminder
    subsystem only reads tasks (and touches proposed_date_time inside its own
    transactions), everything else here serves the checklist commands.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "release_tracker.sqlite3") -> None:
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
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    release_id TEXT NOT NULL,
                    sequence INTEGER NOT NULL DEFAULT 0,
                    title TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'PLANNED',
                    proposed_date_time TEXT,
                    completed_at TEXT
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("proposed_date_time", "TEXT")
            add_col("completed_at", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_release ON tasks(release_id, sequence)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            release_id=str(row["release_id"]),
            sequence=int(row["sequence"] or 0),
            title=str(row["title"] or ""),
            status=TaskStatus.from_db(row["status"]),
            proposed_date_time=row["proposed_date_time"],
            completed_at=row["completed_at"],
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(self, *, release_id: str, title: str, sequence: int | None = None) -> Task:
        """
        Append a PLANNED task to a release checklist.

        Task ids follow the `<release_id>-task-<sequence>` convention.
        """
        release_id = (release_id or "").strip()
        title = (title or "").strip()
        if not release_id:
            raise ValueError("release_id is required")
        if not title:
            raise ValueError("title is required")

        conn = self._get_conn()
        try:
            with conn:
                if sequence is None:
                    (last,) = conn.execute(
                        "SELECT COALESCE(MAX(sequence), 0) FROM tasks WHERE release_id = ?",
                        (release_id,),
                    ).fetchone()
                    sequence = int(last) + 1
                task = Task(
                    id=f"{release_id}-task-{sequence}",
                    release_id=release_id,
                    sequence=int(sequence),
                    title=title,
                    status=TaskStatus.PLANNED,
                )
                conn.execute(
                    """
                    INSERT INTO tasks(id, release_id, sequence, title, status)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (task.id, task.release_id, task.sequence, task.title, task.status.value),
                )
            logger.debug("Task added id=%s release=%s", task.id, release_id)
            return task
        finally:
            conn.close()

    def get_task(self, task_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def list_tasks(self, release_id: str | None = None) -> list[Task]:
        conn = self._get_conn()
        try:
            if release_id:
                rows = conn.execute(
                    "SELECT * FROM tasks WHERE release_id = ? ORDER BY sequence ASC",
                    (release_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM tasks ORDER BY release_id ASC, sequence ASC"
                ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def update_task_status(
        self, task_id: str, new_status: TaskStatus, *, timestamp: str | None = None
    ) -> Task:
        """
        Move a task to new_status.

        DONE stamps completed_at (timestamp or now); any other status clears it.
        Raises LookupError if the task does not exist.
        """
        completed_at = (timestamp or _now_iso()) if new_status is TaskStatus.DONE else None

        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(
                    "UPDATE tasks SET status = ?, completed_at = ? WHERE id = ?",
                    (new_status.value, completed_at, task_id),
                )
                if cur.rowcount != 1:
                    raise LookupError(f"Task not found: {task_id}")
                row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            logger.info("Task %s -> %s", task_id, new_status.value)
            return self._row_to_task(row)
        finally:
            conn.close()
