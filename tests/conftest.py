# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from release_tracker.core.state import AppState
from release_tracker.reminders.reminder_api import ReminderLifecycle
from release_tracker.reminders.reminder_firer import NotificationFirer
from release_tracker.reminders.reminder_scheduler import ReminderScheduler, TimerRegistry
from release_tracker.reminders.reminder_store import NotificationStore
from release_tracker.tasks.task_store import TaskStore

from .fakes import FakeAlertSurface, FakeClock, InMemoryNotificationRepo, InMemoryTaskRepo, planned_task


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        db_path=tmp_path / "release_tracker.sqlite3",
        reminder_max_wait_seconds=3600.0,
        alert_title="Release Task Reminder",
        matrix_rooms=[],
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def alert() -> FakeAlertSurface:
    return FakeAlertSurface()


@pytest.fixture()
def task_repo() -> InMemoryTaskRepo:
    return InMemoryTaskRepo([planned_task()])


@pytest.fixture()
def record_repo(task_repo: InMemoryTaskRepo) -> InMemoryNotificationRepo:
    return InMemoryNotificationRepo(task_repo)


@pytest.fixture()
def registry() -> TimerRegistry:
    return TimerRegistry()


@pytest.fixture()
def firer(record_repo, task_repo, alert, clock, registry) -> NotificationFirer:
    return NotificationFirer(
        notifications=record_repo,
        tasks=task_repo,
        alert=alert,
        clock=clock,
        registry=registry,
    )


@pytest.fixture()
def scheduler(record_repo, firer, registry, clock) -> ReminderScheduler:
    return ReminderScheduler(
        notifications=record_repo,
        firer=firer,
        registry=registry,
        clock=clock,
        max_wait_seconds=3600.0,
        fire_slack_seconds=1.0,
    )


@pytest.fixture()
def lifecycle(record_repo, task_repo, clock) -> ReminderLifecycle:
    return ReminderLifecycle(notifications=record_repo, tasks=task_repo, clock=clock)


@pytest.fixture()
def sqlite_stores(settings: SimpleNamespace) -> tuple[TaskStore, NotificationStore]:
    """Real SQLite stores on one tmp database, as wired by the composition root."""
    return TaskStore(settings.db_path), NotificationStore(settings.db_path)


@pytest.fixture()
def state(settings: SimpleNamespace, sqlite_stores, clock: FakeClock, alert: FakeAlertSurface) -> AppState:
    """
    AppState wired with real SQLite stores and a fake clock/alert surface.

    NOTE: the background runner is left out; commands that need it report it.
    """
    task_store, notification_store = sqlite_stores
    registry = TimerRegistry()
    firer = NotificationFirer(
        notifications=notification_store,
        tasks=task_store,
        alert=alert,
        clock=clock,
        registry=registry,
    )
    scheduler = ReminderScheduler(
        notifications=notification_store, firer=firer, registry=registry, clock=clock
    )
    return AppState(
        settings=settings,
        task_store=task_store,
        notification_store=notification_store,
        reminders=ReminderLifecycle(notifications=notification_store, tasks=task_store, clock=clock),
        scheduler=scheduler,
    )
