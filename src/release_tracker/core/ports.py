# src/release_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the reminder core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and alert surfaces swappable and lets tests run the
scheduler against in-memory fakes and a fake clock.
"""

from datetime import datetime
from typing import Awaitable, Protocol

from ..reminders.reminder_models import NotificationRecord
from ..tasks.task_models import Task, TaskStatus


class TaskRepo(Protocol):
    # Reminder core only reads tasks.
    def get_task(self, task_id: str) -> Task | None: ...

    # Checklist commands
    def add_task(self, *, release_id: str, title: str, sequence: int | None = None) -> Task: ...
    def list_tasks(self, release_id: str | None = None) -> list[Task]: ...
    def update_task_status(
            self,
            task_id: str,
            new_status: TaskStatus,
            *,
            timestamp: str | None = None,
    ) -> Task: ...


class NotificationRepo(Protocol):
    def get_all(self) -> list[NotificationRecord]: ...
    def get(self, record_id: str) -> NotificationRecord | None: ...
    def put(self, record: NotificationRecord) -> None: ...
    def add(self, record: NotificationRecord) -> None: ...
    def query_by_task(self, task_id: str) -> list[NotificationRecord]: ...

    # Compare-and-swap transitions: False means "already terminal" (or gone).
    def mark_fired(self, record_id: str, fired_at: str) -> bool: ...
    def mark_suppressed(self, record_id: str) -> bool: ...

    def replace_pending(
            self,
            task_id: str,
            *,
            record: NotificationRecord | None,
            proposed_date_time: str | None = None,
            set_proposed: bool = False,
    ) -> list[str]: ...


class AlertSurface(Protocol):
    """
    Where fired reminders become visible.

    `tag` is the record id, so a surface can de-duplicate or supersede by it.
    Raises AlertPermissionError when it cannot display at all.
    """

    def display(self, *, title: str, body: str, tag: str) -> Awaitable[None]: ...


class Clock(Protocol):
    def now(self) -> datetime: ...
    def sleep(self, seconds: float) -> Awaitable[None]: ...
