# src/release_tracker/reminders/errors.py

from __future__ import annotations


class ReminderError(RuntimeError):
    """Base class for reminder failures that should reach the user."""


class ReminderStoreError(ReminderError):
    """The notification/task database could not be read or written."""


class ReminderConflictError(ReminderError):
    """A record with the same id already exists and cannot be reused."""


class TaskNotFoundError(ReminderError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class AlertPermissionError(ReminderError):
    """The alert surface refuses to display (not configured, not permitted)."""


def friendly_reminder_error_message(err: Exception) -> str:
    if isinstance(err, TaskNotFoundError):
        return f"Reminder not set: unknown task {err.task_id}. Use /tasks to list task ids."
    if isinstance(err, ReminderConflictError):
        # Reminder history is append-only, so a used (task, instant) pair stays taken.
        return (
            f"Reminder not set: {err}. "
            "A task cannot reuse a reminder time; pick a different minute "
            "(for example one minute later, or add seconds like 09:30:01)."
        )
    if isinstance(err, ReminderStoreError):
        return f"Reminder not saved (storage error): {err}"
    msg = str(err).strip() or "Reminder error."
    return f"Reminder not set: {msg}"
