# tests/test_reminder_api.py

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from release_tracker.reminders.errors import (
    ReminderConflictError,
    ReminderError,
    ReminderStoreError,
    TaskNotFoundError,
)
from release_tracker.reminders.reminder_api import ReminderLifecycle
from release_tracker.reminders.reminder_models import format_instant
from release_tracker.tasks.task_models import TaskStatus

from .fakes import T0, FakeClock, record_at


@pytest.fixture()
def wakes() -> list[int]:
    return []


@pytest.fixture()
def api(sqlite_stores, clock: FakeClock, wakes: list[int]) -> ReminderLifecycle:
    task_store, notification_store = sqlite_stores
    return ReminderLifecycle(
        notifications=notification_store,
        tasks=task_store,
        clock=clock,
        wake=lambda: wakes.append(1),
    )


@pytest.fixture()
def task(sqlite_stores):
    task_store, _ = sqlite_stores
    return task_store.add_task(release_id="1q-qr-2026", title="Create common feature branch")


def _pending(store, task_id: str):
    return [r for r in store.query_by_task(task_id) if r.is_pending]


def test_schedule_creates_pending_record_and_sets_proposed_date(api, sqlite_stores, task, wakes) -> None:
    task_store, notifications = sqlite_stores
    when = T0 + timedelta(hours=3)

    rec = api.schedule(task.id, when)

    assert rec.task_id == task.id
    assert rec.release_id == "1q-qr-2026"
    assert rec.scheduled_for == format_instant(when)
    assert [r.id for r in _pending(notifications, task.id)] == [rec.id]
    assert task_store.get_task(task.id).proposed_date_time == rec.scheduled_for
    assert wakes == [1]


def test_reschedule_leaves_exactly_one_pending(api, sqlite_stores, task) -> None:
    task_store, notifications = sqlite_stores
    t1 = T0 + timedelta(hours=1)
    t2 = T0 + timedelta(hours=5)

    first = api.schedule(task.id, t1)
    second = api.reschedule(task.id, t2)

    pending = _pending(notifications, task.id)
    assert [r.id for r in pending] == [second.id]
    assert notifications.get(first.id).suppressed is True
    assert task_store.get_task(task.id).proposed_date_time == format_instant(t2)


def test_schedule_collapses_many_stray_pending_records(api, sqlite_stores, task) -> None:
    _, notifications = sqlite_stores
    for hours in (1, 2, 3):
        notifications.add(record_at(task, T0 + timedelta(hours=hours)))
    assert len(_pending(notifications, task.id)) == 3

    rec = api.schedule(task.id, T0 + timedelta(days=1))

    assert [r.id for r in _pending(notifications, task.id)] == [rec.id]
    assert len(notifications.query_by_task(task.id)) == 4


def test_schedule_same_instant_twice_is_idempotent(api, sqlite_stores, task) -> None:
    _, notifications = sqlite_stores
    when = T0 + timedelta(hours=2)

    a = api.schedule(task.id, when)
    # Same instant written in another offset.
    b = api.schedule(task.id, when.astimezone(timezone(timedelta(hours=3))))

    assert a.id == b.id
    assert len(notifications.query_by_task(task.id)) == 1
    assert notifications.get(a.id).is_pending


def test_schedule_reusing_fired_instant_is_a_conflict(api, sqlite_stores, task) -> None:
    _, notifications = sqlite_stores
    when = T0 + timedelta(hours=2)
    rec = api.schedule(task.id, when)
    assert notifications.mark_fired(rec.id, format_instant(T0))

    with pytest.raises(ReminderConflictError):
        api.schedule(task.id, when)


def test_failed_schedule_keeps_previous_reminder(api, sqlite_stores, task) -> None:
    _, notifications = sqlite_stores
    used = api.schedule(task.id, T0 + timedelta(hours=1))
    notifications.mark_suppressed(used.id)
    current = api.schedule(task.id, T0 + timedelta(hours=4))

    with pytest.raises(ReminderConflictError):
        api.schedule(task.id, T0 + timedelta(hours=1))

    assert [r.id for r in _pending(notifications, task.id)] == [current.id]


def test_snooze_schedules_relative_to_clock(api, sqlite_stores, task, clock) -> None:
    clock.set(T0 + timedelta(minutes=7))

    rec = api.snooze(task.id, 15)

    assert rec.scheduled_for == format_instant(T0 + timedelta(minutes=22))


@pytest.mark.parametrize("minutes", [0, -5, "soon"])
def test_snooze_rejects_bad_minutes(api, sqlite_stores, task, minutes) -> None:
    _, notifications = sqlite_stores

    with pytest.raises(ValueError):
        api.snooze(task.id, minutes)

    assert notifications.query_by_task(task.id) == []


def test_clear_suppresses_and_drops_proposed_date(api, sqlite_stores, task) -> None:
    task_store, notifications = sqlite_stores
    rec = api.schedule(task.id, T0 + timedelta(hours=1))

    suppressed = api.clear(task.id)

    assert suppressed == [rec.id]
    assert _pending(notifications, task.id) == []
    assert task_store.get_task(task.id).proposed_date_time is None


def test_clear_without_reminders_is_harmless(api, task) -> None:
    assert api.clear(task.id) == []


def test_completion_suppresses_but_keeps_proposed_date(api, sqlite_stores, task) -> None:
    task_store, notifications = sqlite_stores
    rec = api.schedule(task.id, T0 + timedelta(hours=1))

    task_store.update_task_status(task.id, TaskStatus.DONE)
    suppressed = api.on_task_completed(task.id)

    assert suppressed == [rec.id]
    assert notifications.get(rec.id).suppressed is True
    assert task_store.get_task(task.id).proposed_date_time == rec.scheduled_for


def test_reopen_does_not_resurrect_reminder(api, sqlite_stores, task) -> None:
    task_store, notifications = sqlite_stores
    api.schedule(task.id, T0 + timedelta(hours=1))
    task_store.update_task_status(task.id, TaskStatus.NOT_APPLICABLE)
    api.on_task_completed(task.id)

    task_store.update_task_status(task.id, TaskStatus.PLANNED)
    api.on_task_reopened(task.id)

    assert _pending(notifications, task.id) == []

    rec = api.schedule(task.id, T0 + timedelta(hours=6))
    assert [r.id for r in _pending(notifications, task.id)] == [rec.id]


def test_schedule_unknown_task(api, sqlite_stores) -> None:
    _, notifications = sqlite_stores

    with pytest.raises(TaskNotFoundError) as exc:
        api.schedule("no-such-task", T0)

    assert exc.value.task_id == "no-such-task"
    assert notifications.get_all() == []


def test_clear_unknown_task(api) -> None:
    with pytest.raises(TaskNotFoundError):
        api.clear("no-such-task")


def test_schedule_on_closed_task_is_rejected(api, sqlite_stores, task) -> None:
    task_store, notifications = sqlite_stores
    task_store.update_task_status(task.id, TaskStatus.DONE)

    with pytest.raises(ReminderError):
        api.schedule(task.id, T0 + timedelta(hours=1))

    assert notifications.query_by_task(task.id) == []


def test_schedule_rejects_non_datetime(api, task) -> None:
    with pytest.raises(ValueError):
        api.schedule(task.id, "tomorrow")  # type: ignore[arg-type]


def test_wake_failure_does_not_fail_the_write(sqlite_stores, clock, task, caplog) -> None:
    task_store, notifications = sqlite_stores

    def broken_wake() -> None:
        raise RuntimeError("loop is gone")

    api = ReminderLifecycle(notifications=notifications, tasks=task_store, clock=clock, wake=broken_wake)

    rec = api.schedule(task.id, T0 + timedelta(hours=1))

    assert notifications.get(rec.id).is_pending
    assert "wake signal failed" in caplog.text


def test_task_read_failure_is_reported_as_store_error(record_repo, task_repo, clock) -> None:
    task_repo.fail_reads = True
    api = ReminderLifecycle(notifications=record_repo, tasks=task_repo, clock=clock)

    with pytest.raises(ReminderStoreError):
        api.schedule("1q-qr-2026-task-1", T0)


def test_list_reminders_filters_by_task(api, sqlite_stores, task) -> None:
    task_store, _ = sqlite_stores
    other = task_store.add_task(release_id="1q-qr-2026", title="Merge to development")
    a = api.schedule(task.id, T0 + timedelta(hours=1))
    b = api.schedule(other.id, T0 + timedelta(hours=2))

    assert [r.id for r in api.list_reminders(task.id)] == [a.id]
    assert {r.id for r in api.list_reminders()} == {a.id, b.id}
