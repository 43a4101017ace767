# src/release_tracker/reminders/reminder_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from pathlib import Path

from .errors import ReminderConflictError, ReminderStoreError, TaskNotFoundError
from .reminder_models import NotificationRecord

logger = logging.getLogger(__name__)


class NotificationStore:
    """
    SQLite store for notification records.

    Records are append-only: rows are inserted pending and later moved to
    fired or suppressed by compare-and-swap UPDATEs, never deleted.

    The table lives in the same database file as `tasks` so that
    replace_pending() can touch both in a single transaction.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "release_tracker.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("NotificationStore ready db=%s", self._db_path)

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
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL,
                    release_id TEXT NOT NULL DEFAULT '',
                    scheduled_for TEXT NOT NULL,
                    fired_at TEXT,
                    suppressed INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_notifications_task ON notifications(task_id)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> NotificationRecord:
        return NotificationRecord(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            release_id=str(row["release_id"] or ""),
            scheduled_for=str(row["scheduled_for"] or ""),
            fired_at=row["fired_at"],
            suppressed=bool(row["suppressed"]),
        )

    # ---- reads ----

    def get_all(self) -> list[NotificationRecord]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM notifications ORDER BY scheduled_for ASC").fetchall()
            return [self._row_to_record(r) for r in rows]
        finally:
            conn.close()

    def get(self, record_id: str) -> NotificationRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM notifications WHERE id = ?", (record_id,)).fetchone()
            return self._row_to_record(row) if row else None
        finally:
            conn.close()

    def query_by_task(self, task_id: str) -> list[NotificationRecord]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT * FROM notifications WHERE task_id = ? ORDER BY scheduled_for ASC",
                (task_id,),
            ).fetchall()
            return [self._row_to_record(r) for r in rows]
        finally:
            conn.close()

    # ---- writes ----

    def put(self, record: NotificationRecord) -> None:
        """Unconditional upsert. Lifecycle code uses the CAS transitions below instead."""
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO notifications(id, task_id, release_id, scheduled_for, fired_at, suppressed)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.id,
                    record.task_id,
                    record.release_id,
                    record.scheduled_for,
                    record.fired_at,
                    int(record.suppressed),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def add(self, record: NotificationRecord) -> None:
        """Insert a new record; raises ReminderConflictError if the id is taken."""
        conn = self._get_conn()
        try:
            self._insert(conn, record)
            conn.commit()
        except sqlite3.IntegrityError as e:
            raise ReminderConflictError(f"reminder {record.id} already exists") from e
        finally:
            conn.close()

    @staticmethod
    def _insert(conn: sqlite3.Connection, record: NotificationRecord) -> None:
        conn.execute(
            """
            INSERT INTO notifications(id, task_id, release_id, scheduled_for, fired_at, suppressed)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                record.id,
                record.task_id,
                record.release_id,
                record.scheduled_for,
                record.fired_at,
                int(record.suppressed),
            ),
        )

    def mark_fired(self, record_id: str, fired_at: str) -> bool:
        """
        Atomically transition pending -> fired.

        Returns False if the record is missing or already terminal.
        """
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE notifications
                SET fired_at = ?
                WHERE id = ?
                  AND fired_at IS NULL
                  AND suppressed = 0
                """,
                (fired_at, record_id),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def mark_suppressed(self, record_id: str) -> bool:
        """
        Atomically transition pending -> suppressed.

        Returns False if the record is missing or already terminal.
        """
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE notifications
                SET suppressed = 1
                WHERE id = ?
                  AND fired_at IS NULL
                  AND suppressed = 0
                """,
                (record_id,),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()

    def replace_pending(
        self,
        task_id: str,
        *,
        record: NotificationRecord | None,
        proposed_date_time: str | None = None,
        set_proposed: bool = False,
    ) -> list[str]:
        """
        Suppress the task's pending records, optionally update the task's
        proposed_date_time and insert `record`, all in one transaction.

        A pending record with the same id as `record` is kept as is, which makes
        scheduling the same instant twice a no-op. A terminal one raises
        ReminderConflictError. Returns the ids that were suppressed.
        """
        conn = self._get_conn()
        try:
            try:
                conn.execute("BEGIN IMMEDIATE")

                if conn.execute("SELECT 1 FROM tasks WHERE id = ?", (task_id,)).fetchone() is None:
                    raise TaskNotFoundError(task_id)

                keep_id: str | None = None
                if record is not None:
                    row = conn.execute(
                        "SELECT * FROM notifications WHERE id = ?", (record.id,)
                    ).fetchone()
                    if row is not None:
                        existing = self._row_to_record(row)
                        if not existing.is_pending:
                            raise ReminderConflictError(
                                f"{task_id} already had a reminder at {existing.scheduled_for} "
                                f"({existing.state.value})"
                            )
                        keep_id = existing.id

                rows = conn.execute(
                    """
                    SELECT id FROM notifications
                    WHERE task_id = ?
                      AND fired_at IS NULL
                      AND suppressed = 0
                    """,
                    (task_id,),
                ).fetchall()
                to_suppress = [str(r["id"]) for r in rows if r["id"] != keep_id]

                conn.executemany(
                    """
                    UPDATE notifications
                    SET suppressed = 1
                    WHERE id = ?
                      AND fired_at IS NULL
                      AND suppressed = 0
                    """,
                    [(rid,) for rid in to_suppress],
                )

                if set_proposed:
                    conn.execute(
                        "UPDATE tasks SET proposed_date_time = ? WHERE id = ?",
                        (proposed_date_time, task_id),
                    )

                if record is not None and keep_id is None:
                    self._insert(conn, record)

                conn.commit()
            except BaseException:
                conn.rollback()
                raise
        except sqlite3.Error as e:
            raise ReminderStoreError(str(e)) from e
        finally:
            conn.close()

        if to_suppress:
            logger.debug("Suppressed pending reminders task=%s ids=%s", task_id, to_suppress)
        return to_suppress
