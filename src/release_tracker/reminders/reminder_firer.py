# src/release_tracker/reminders/reminder_firer.py

from __future__ import annotations

"""
Notification firer.

Turns one due record into either a visible alert (pending -> fired) or a
silent suppression (pending -> suppressed), re-validating everything right
before it acts because another process may have changed the record since its
timer was armed.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

from ..core.ports import AlertSurface, Clock, NotificationRepo, TaskRepo
from ..tasks.task_models import TaskStatus
from .errors import AlertPermissionError
from .reminder_models import format_instant

if TYPE_CHECKING:
    from .reminder_scheduler import TimerRegistry

logger = logging.getLogger(__name__)

# Separate channel so "alerts are not reaching anyone" is easy to route or grep.
permission_logger = logging.getLogger("release_tracker.reminders.permission")

DEFAULT_ALERT_TITLE = "Release Task Reminder"


class NotificationFirer:
    def __init__(
            self,
            *,
            notifications: NotificationRepo,
            tasks: TaskRepo,
            alert: AlertSurface,
            clock: Clock,
            registry: TimerRegistry,
            alert_title: str = DEFAULT_ALERT_TITLE,
    ) -> None:
        self._notifications = notifications
        self._tasks = tasks
        self._alert = alert
        self._clock = clock
        self._registry = registry
        self._alert_title = alert_title

    async def fire(self, record_id: str) -> None:
        """
        Fire one record at most once. Never raises.

        Failures leave the record pending so the next reconcile pass retries it.
        """
        self._registry.discard(record_id)

        try:
            record = await asyncio.to_thread(self._notifications.get, record_id)
        except Exception:
            logger.exception("Reading reminder failed id=%s", record_id)
            return

        if record is None or not record.is_pending:
            logger.debug("Reminder %s no longer pending; nothing to fire", record_id)
            return

        try:
            task = await asyncio.to_thread(self._tasks.get_task, record.task_id)
        except Exception:
            logger.exception("Reading task failed task_id=%s reminder=%s", record.task_id, record_id)
            return

        if task is None or task.status is not TaskStatus.PLANNED:
            try:
                changed = await asyncio.to_thread(self._notifications.mark_suppressed, record_id)
            except Exception:
                logger.exception("Suppressing reminder failed id=%s", record_id)
                return
            logger.info(
                "Reminder %s suppressed (task=%s status=%s) changed=%s",
                record_id,
                record.task_id,
                task.status.value if task is not None else "missing",
                changed,
            )
            return

        try:
            await self._alert.display(title=self._alert_title, body=task.title, tag=record.id)
        except AlertPermissionError as e:
            # Consumed silently rather than kept pending, so denied alerts do not pile up.
            permission_logger.warning(
                "Alert surface refused reminder %s (%s); marking it fired without display", record_id, e
            )
        except Exception:
            logger.exception("Displaying reminder failed id=%s", record_id)
            return

        try:
            fired_at = format_instant(self._clock.now())
            changed = await asyncio.to_thread(self._notifications.mark_fired, record_id, fired_at)
        except Exception:
            logger.exception("Marking reminder fired failed id=%s", record_id)
            return

        if changed:
            logger.info("Reminder %s fired for task %s", record_id, record.task_id)
        else:
            # Another process finished it while we were displaying.
            logger.info("Reminder %s was already terminal when stamping fired_at", record_id)
