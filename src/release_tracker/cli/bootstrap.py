# src/release_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires stores, alert surfaces, firer, scheduler, background runner and the
  reminder lifecycle API into AppState.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from ..config import get_settings
from ..connectors.alerts import FanOutAlertSurface
from ..connectors.console_alerts import ConsoleAlertSurface
from ..connectors.matrix_alerts import MatrixAlertSurface
from ..core.ports import AlertSurface
from ..core.state import AppState
from ..reminders.clock import SystemClock
from ..reminders.reminder_api import ReminderLifecycle
from ..reminders.reminder_firer import NotificationFirer
from ..reminders.reminder_scheduler import ReminderBackgroundRunner, ReminderScheduler, TimerRegistry
from ..reminders.reminder_store import NotificationStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    if settings.matrix_enabled:
        settings.matrix_store_path.mkdir(parents=True, exist_ok=True)


def build_alert_surface(settings) -> tuple[AlertSurface, list[Callable[[], Awaitable[None]]]]:
    """Pick alert surfaces from settings; returns the surface and its async close hooks."""
    surfaces: list[AlertSurface] = []
    hooks: list[Callable[[], Awaitable[None]]] = []

    if settings.console_enabled or not settings.matrix_enabled:
        surfaces.append(ConsoleAlertSurface())

    if settings.matrix_enabled:
        matrix = MatrixAlertSurface(settings)
        surfaces.append(matrix)
        hooks.append(matrix.close)

    if len(surfaces) == 1:
        return surfaces[0], hooks
    return FanOutAlertSurface(surfaces), hooks


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    The background runner is created but not started.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.db_path)
    notification_store = NotificationStore(settings.db_path)
    clock = SystemClock()
    registry = TimerRegistry()
    alert, close_hooks = build_alert_surface(settings)

    firer = NotificationFirer(
        notifications=notification_store,
        tasks=task_store,
        alert=alert,
        clock=clock,
        registry=registry,
        alert_title=settings.alert_title,
    )
    scheduler = ReminderScheduler(
        notifications=notification_store,
        firer=firer,
        registry=registry,
        clock=clock,
        max_wait_seconds=settings.reminder_max_wait_seconds,
        fire_slack_seconds=settings.reminder_fire_slack_seconds,
    )
    runner = ReminderBackgroundRunner(
        scheduler,
        interval_seconds=settings.reminder_recheck_interval_seconds,
        shutdown_hooks=close_hooks,
    )
    reminders = ReminderLifecycle(
        notifications=notification_store,
        tasks=task_store,
        clock=clock,
        wake=runner.wake,
    )

    return AppState(
        settings=settings,
        task_store=task_store,
        notification_store=notification_store,
        reminders=reminders,
        scheduler=scheduler,
        runner=runner,
    )
