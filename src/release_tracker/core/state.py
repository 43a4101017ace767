# src/release_tracker/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .ports import NotificationRepo, TaskRepo

if TYPE_CHECKING:
    from ..reminders.reminder_api import ReminderLifecycle
    from ..reminders.reminder_scheduler import ReminderBackgroundRunner, ReminderScheduler


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    task_store: TaskRepo
    notification_store: NotificationRepo
    reminders: ReminderLifecycle
    scheduler: ReminderScheduler
    runner: ReminderBackgroundRunner | None = None
