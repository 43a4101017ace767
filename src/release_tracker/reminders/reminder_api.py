# src/release_tracker/reminders/reminder_api.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from ..core.ports import Clock, NotificationRepo, TaskRepo
from ..tasks.task_models import Task
from .errors import ReminderError, ReminderStoreError, TaskNotFoundError
from .reminder_models import NotificationRecord

logger = logging.getLogger(__name__)


class ReminderLifecycle:
    """
    User-facing reminder operations.

    Every mutation leaves at most one pending record per task: the
    suppress-then-create sequence runs as one store transaction, and calls for
    the same task are serialized with a per-task lock. Failures are raised to
    the caller (ReminderError subclasses / ValueError) so the user sees them.

    After each successful write the scheduler is woken to reconcile.
    """

    def __init__(
            self,
            *,
            notifications: NotificationRepo,
            tasks: TaskRepo,
            clock: Clock,
            wake: Callable[[], None] | None = None,
    ) -> None:
        self._notifications = notifications
        self._tasks = tasks
        self._clock = clock
        self._wake = wake
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ---- helpers ----

    def _task_lock(self, task_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(task_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[task_id] = lock
            return lock

    def _get_task(self, task_id: str) -> Task:
        try:
            task = self._tasks.get_task(task_id)
        except ReminderError:
            raise
        except Exception as e:
            raise ReminderStoreError(f"could not read task {task_id}: {e}") from e
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _replace_pending(
            self,
            task_id: str,
            *,
            record: NotificationRecord | None,
            proposed_date_time: str | None = None,
            set_proposed: bool = False,
    ) -> list[str]:
        try:
            return self._notifications.replace_pending(
                task_id,
                record=record,
                proposed_date_time=proposed_date_time,
                set_proposed=set_proposed,
            )
        except ReminderError:
            raise
        except Exception as e:
            raise ReminderStoreError(f"could not update reminders for {task_id}: {e}") from e

    def _signal(self) -> None:
        if self._wake is None:
            return
        try:
            self._wake()
        except Exception:
            # The write is durable; the periodic pass will pick it up.
            logger.exception("Reminder wake signal failed")

    @staticmethod
    def _require_task_id(task_id: str) -> str:
        task_id = (task_id or "").strip()
        if not task_id:
            raise ValueError("task_id is required")
        return task_id

    # ---- operations ----

    def schedule(self, task_id: str, when: datetime) -> NotificationRecord:
        """Make `when` the task's only pending reminder and its proposed date."""
        task_id = self._require_task_id(task_id)
        if not isinstance(when, datetime):
            raise ValueError("when must be a datetime")

        with self._task_lock(task_id):
            task = self._get_task(task_id)
            if task.status.is_closed:
                raise ReminderError(
                    f"task {task_id} is {task.status.value}; reopen it before setting a reminder"
                )

            record = NotificationRecord.new(task_id=task.id, release_id=task.release_id, when=when)
            suppressed = self._replace_pending(
                task_id,
                record=record,
                proposed_date_time=record.scheduled_for,
                set_proposed=True,
            )

        logger.info(
            "Reminder scheduled task=%s at=%s (suppressed %d)", task_id, record.scheduled_for, len(suppressed)
        )
        self._signal()
        return record

    def reschedule(self, task_id: str, when: datetime) -> NotificationRecord:
        return self.schedule(task_id, when)

    def snooze(self, task_id: str, minutes_from_now: float) -> NotificationRecord:
        try:
            minutes = float(minutes_from_now)
        except (TypeError, ValueError) as e:
            raise ValueError("minutes must be a number") from e
        if minutes <= 0:
            raise ValueError("minutes must be positive")
        return self.reschedule(task_id, self._clock.now() + timedelta(minutes=minutes))

    def clear(self, task_id: str) -> list[str]:
        """Drop the task's pending reminder and its proposed date."""
        task_id = self._require_task_id(task_id)
        with self._task_lock(task_id):
            suppressed = self._replace_pending(
                task_id, record=None, proposed_date_time=None, set_proposed=True
            )
        logger.info("Reminders cleared task=%s (suppressed %d)", task_id, len(suppressed))
        self._signal()
        return suppressed

    def on_task_completed(self, task_id: str) -> list[str]:
        """Task became DONE / NOT_APPLICABLE: suppress pending reminders, keep the date."""
        task_id = self._require_task_id(task_id)
        with self._task_lock(task_id):
            suppressed = self._replace_pending(task_id, record=None)
        if suppressed:
            logger.info("Task %s closed; suppressed reminders %s", task_id, suppressed)
        self._signal()
        return suppressed

    def on_task_reopened(self, task_id: str) -> None:
        # Reopening never resurrects a reminder; the operator reschedules explicitly.
        logger.info("Task %s reopened; reminders stay as they are", task_id)

    def list_reminders(self, task_id: str | None = None) -> list[NotificationRecord]:
        try:
            if task_id:
                return self._notifications.query_by_task(task_id)
            return self._notifications.get_all()
        except Exception as e:
            raise ReminderStoreError(f"could not read reminders: {e}") from e
