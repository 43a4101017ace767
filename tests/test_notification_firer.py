# tests/test_notification_firer.py

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest

from release_tracker.tasks.task_models import TaskStatus

from .fakes import T0, planned_task, record_at


@pytest.mark.asyncio
async def test_fire_shows_alert_and_stamps_fired_at(firer, record_repo, alert) -> None:
    rec = record_at(planned_task(), T0)
    record_repo.add(rec)

    await firer.fire(rec.id)

    assert len(alert.shown) == 1
    assert alert.shown[0].title == "Release Task Reminder"
    assert alert.shown[0].tag == rec.id
    assert record_repo.get(rec.id).fired_at == T0.isoformat(timespec="seconds")


@pytest.mark.asyncio
async def test_fire_is_at_most_once(firer, record_repo, alert) -> None:
    rec = record_at(planned_task(), T0)
    record_repo.add(rec)

    await firer.fire(rec.id)
    await firer.fire(rec.id)

    assert len(alert.shown) == 1


@pytest.mark.parametrize("status", [TaskStatus.DONE, TaskStatus.NOT_APPLICABLE])
@pytest.mark.asyncio
async def test_closed_task_suppresses_instead_of_alerting(firer, record_repo, task_repo, alert, status) -> None:
    task = planned_task()
    rec = record_at(task, T0)
    record_repo.add(rec)
    task_repo.update_task_status(task.id, status)

    await firer.fire(rec.id)

    assert alert.shown == []
    stored = record_repo.get(rec.id)
    assert stored.suppressed is True
    assert stored.fired_at is None


@pytest.mark.asyncio
async def test_missing_task_suppresses_record(firer, record_repo, alert) -> None:
    rec = record_at(planned_task(task_id="gone"), T0)
    record_repo.add(rec)

    await firer.fire(rec.id)

    assert alert.shown == []
    assert record_repo.get(rec.id).suppressed is True


@pytest.mark.asyncio
async def test_missing_or_terminal_record_is_a_noop(firer, record_repo, alert) -> None:
    rec = record_at(planned_task(), T0)
    record_repo.add(rec)
    record_repo.mark_suppressed(rec.id)

    await firer.fire(rec.id)
    await firer.fire("no-such-record")

    assert alert.shown == []
    assert record_repo.get(rec.id).fired_at is None


@pytest.mark.asyncio
async def test_fire_drops_registry_entry_without_cancelling(firer, record_repo, registry) -> None:
    rec = record_at(planned_task(), T0)
    record_repo.add(rec)
    parked = registry.arm(rec.id, asyncio.sleep(3600))

    await firer.fire(rec.id)

    assert rec.id not in registry
    assert not parked.cancelled()
    parked.cancel()


@pytest.mark.asyncio
async def test_permission_denied_consumes_record(firer, record_repo, alert, caplog) -> None:
    alert.deny = True
    rec = record_at(planned_task(), T0)
    record_repo.add(rec)

    with caplog.at_level(logging.WARNING, logger="release_tracker.reminders.permission"):
        await firer.fire(rec.id)

    assert record_repo.get(rec.id).fired_at is not None
    assert any(r.name == "release_tracker.reminders.permission" for r in caplog.records)


@pytest.mark.asyncio
async def test_alert_failure_leaves_record_pending(firer, record_repo, alert) -> None:
    alert.fail = True
    rec = record_at(planned_task(), T0)
    record_repo.add(rec)

    await firer.fire(rec.id)

    assert record_repo.get(rec.id).is_pending

    alert.fail = False
    await firer.fire(rec.id)
    assert [a.tag for a in alert.shown] == [rec.id]


@pytest.mark.asyncio
async def test_store_failures_are_contained(firer, record_repo, task_repo, alert) -> None:
    rec = record_at(planned_task(), T0 + timedelta(seconds=1))
    record_repo.add(rec)

    record_repo.fail_get = True
    await firer.fire(rec.id)
    record_repo.fail_get = False

    task_repo.fail_reads = True
    await firer.fire(rec.id)
    task_repo.fail_reads = False

    record_repo.fail_mark_fired = True
    await firer.fire(rec.id)

    # Only the last attempt got as far as displaying; the stamp failed so it stays pending.
    assert len(alert.shown) == 1
    assert record_repo.get(rec.id).is_pending


@pytest.mark.asyncio
async def test_record_suppressed_while_timer_was_armed_is_not_shown(
    scheduler, lifecycle, record_repo, clock, alert, registry
) -> None:
    task = planned_task()
    rec = lifecycle.schedule(task.id, T0 + timedelta(minutes=20))
    await scheduler.reconcile()
    timer = registry.get(rec.id)
    assert timer is not None

    # Cleared from another surface; no reconcile pass runs before the timer elapses.
    lifecycle.clear(task.id)
    await clock.advance(1200)
    await asyncio.wait_for(timer, timeout=2)

    assert alert.shown == []
    assert record_repo.get(rec.id).suppressed is True
