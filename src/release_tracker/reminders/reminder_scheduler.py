# src/release_tracker/reminders/reminder_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

A reconciliation loop that:
- reads every durable notification record,
- keeps exactly one in-process timer per pending record (TimerRegistry),
- fires records that are due right away,
- arms capped timers for the rest and re-checks when a capped wait elapses,
- cancels timers whose record stopped being pending.

The registry is never persisted; the first pass after start rebuilds it.
"""

import asyncio
import contextlib
import logging
import threading
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from ..core.ports import Clock, NotificationRepo
from .reminder_firer import NotificationFirer

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT_SECONDS = 3600.0
DEFAULT_FIRE_SLACK_SECONDS = 1.0


class TimerRegistry:
    """Process-local map: record id -> live timer task."""

    def __init__(self) -> None:
        self._timers: dict[str, asyncio.Task[None]] = {}
        # Every spawned timer until it finishes, including ones that already left _timers to fire.
        self._live: set[asyncio.Task[None]] = set()

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._timers

    def __len__(self) -> int:
        return len(self._timers)

    def ids(self) -> list[str]:
        return list(self._timers)

    def get(self, record_id: str) -> asyncio.Task[None] | None:
        return self._timers.get(record_id)

    def arm(self, record_id: str, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=f"reminder:{record_id}")
        self._timers[record_id] = task
        self._live.add(task)
        task.add_done_callback(self._live.discard)
        return task

    def discard(self, record_id: str, *, only: asyncio.Task[Any] | None = None) -> None:
        """Forget a timer without cancelling it (used by the timer itself and the firer)."""
        if only is not None and self._timers.get(record_id) is not only:
            return
        self._timers.pop(record_id, None)

    def cancel(self, record_id: str) -> None:
        task = self._timers.pop(record_id, None)
        if task is not None:
            task.cancel()

    def cancel_all(self) -> list[asyncio.Task[None]]:
        """
        Cancel every armed timer.

        Returns all timer tasks that have not finished yet: the cancelled ones
        and the ones already firing, which are left to complete.
        """
        armed = list(self._timers.values())
        self._timers.clear()
        for task in armed:
            task.cancel()
        return [t for t in self._live if not t.done()]


class ReminderScheduler:
    def __init__(
            self,
            *,
            notifications: NotificationRepo,
            firer: NotificationFirer,
            registry: TimerRegistry,
            clock: Clock,
            max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
            fire_slack_seconds: float = DEFAULT_FIRE_SLACK_SECONDS,
    ) -> None:
        self._notifications = notifications
        self._firer = firer
        self._registry = registry
        self._clock = clock
        self._max_wait = max(1.0, float(max_wait_seconds))
        self._fire_slack = max(0.0, float(fire_slack_seconds))
        self._lock = asyncio.Lock()
        # Records whose timer elapsed and whose fire() has not returned yet.
        self._in_flight: set[str] = set()

    @property
    def registry(self) -> TimerRegistry:
        return self._registry

    async def reconcile(self) -> None:
        """
        Align the timer registry with durable record state. Never raises.

        Passes are serialized, so overlapping triggers just run back to back
        and the second one finds everything already tracked.
        """
        async with self._lock:
            try:
                await self._reconcile_pass()
            except Exception:
                logger.exception("Reminder reconcile pass failed")

    async def _reconcile_pass(self) -> None:
        records = await asyncio.to_thread(self._notifications.get_all)
        now = self._clock.now()
        seen: set[str] = set()

        for record in records:
            if record.id in self._registry:
                # Still pending -> keep its timer; terminal -> left unseen, cancelled below.
                if record.is_pending:
                    seen.add(record.id)
                continue

            if not record.is_pending:
                continue

            if record.id in self._in_flight:
                # Still pending only until that fire() stamps it.
                continue

            scheduled_at = record.scheduled_at()
            if scheduled_at is None:
                logger.warning(
                    "Skipping reminder %s: unparseable scheduled_for=%r", record.id, record.scheduled_for
                )
                continue

            seen.add(record.id)
            delay = max(0.0, (scheduled_at - now).total_seconds())

            if delay <= self._fire_slack:
                await self._firer.fire(record.id)
                continue

            wait = min(delay, self._max_wait)
            self._registry.arm(record.id, self._run_timer(record.id, wait=wait, delay=delay))
            logger.debug("Armed reminder %s wait=%.1fs (due in %.1fs)", record.id, wait, delay)

        for record_id in self._registry.ids():
            if record_id not in seen:
                self._registry.cancel(record_id)
                logger.debug("Cancelled orphaned reminder timer %s", record_id)

    async def _run_timer(self, record_id: str, *, wait: float, delay: float) -> None:
        await self._clock.sleep(wait)

        if delay > self._max_wait:
            # Capped wait elapsed; the record may still not be due.
            self._registry.discard(record_id, only=asyncio.current_task())
            await self.reconcile()
            return

        # Claim before leaving the registry so no reconcile pass sees it untracked.
        self._in_flight.add(record_id)
        self._registry.discard(record_id, only=asyncio.current_task())
        try:
            await self._firer.fire(record_id)
        finally:
            self._in_flight.discard(record_id)


async def run_reminder_loop(
        scheduler: ReminderScheduler,
        *,
        wake_event: asyncio.Event,
        stop_event: asyncio.Event,
        interval_seconds: float = 60.0,
) -> None:
    """
    Reconcile on start, then on every wake signal and every interval_seconds.

    Wake signals that arrive while a pass is running coalesce into one more pass.
    """
    sleep_s = max(0.5, float(interval_seconds))

    await scheduler.reconcile()
    try:
        while not stop_event.is_set():
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(wake_event.wait(), timeout=sleep_s)
            wake_event.clear()
            if stop_event.is_set():
                break
            await scheduler.reconcile()
    finally:
        # A timer that was mid-reconcile may arm new ones; repeat until none are left.
        while True:
            remaining = scheduler.registry.cancel_all()
            if not remaining:
                break
            await asyncio.gather(*remaining, return_exceptions=True)


class ReminderBackgroundRunner:
    """
    Runs the reminder loop in a background thread with its own event loop.

    Why a thread:
    - console REPL is blocking (input()).
    - reminder timers are asyncio tasks and want a loop that is always running.
    """

    def __init__(
            self,
            scheduler: ReminderScheduler,
            *,
            interval_seconds: float = 60.0,
            shutdown_hooks: list[Callable[[], Awaitable[None]]] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._shutdown_hooks = list(shutdown_hooks or [])
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wake_event: asyncio.Event | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.running:
            return True

        ready = threading.Event()

        def runner() -> None:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._loop = loop
            self._wake_event = asyncio.Event()
            self._stop_event = asyncio.Event()
            ready.set()

            try:
                loop.run_until_complete(self._main())
            finally:
                with contextlib.suppress(Exception):
                    loop.stop()
                with contextlib.suppress(Exception):
                    loop.close()

        t = threading.Thread(target=runner, name="reminders", daemon=True)
        self._thread = t
        t.start()

        if not ready.wait(timeout=5.0):
            logger.error("Reminder thread did not initialize properly.")
            return False

        logger.info("Reminder background thread started.")
        return True

    async def _main(self) -> None:
        assert self._wake_event is not None and self._stop_event is not None
        try:
            await run_reminder_loop(
                self._scheduler,
                wake_event=self._wake_event,
                stop_event=self._stop_event,
                interval_seconds=self._interval,
            )
        except asyncio.CancelledError:
            logger.info("Reminder loop cancelled.")
        except Exception:
            logger.exception("Reminder loop crashed.")
        finally:
            for hook in self._shutdown_hooks:
                try:
                    await hook()
                except Exception:
                    logger.debug("Reminder shutdown hook failed.", exc_info=True)
            logger.info("Reminder loop stopped.")

    def wake(self) -> None:
        """Thread-safe "recheck" signal; a no-op before start / after stop."""
        loop, event = self._loop, self._wake_event
        if loop is None or event is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(event.set)
        except RuntimeError:
            logger.debug("Reminder loop already closed; wake ignored.")

    def stop(self) -> None:
        loop, stop_event, wake_event = self._loop, self._stop_event, self._wake_event
        if loop is None or stop_event is None or wake_event is None:
            return

        def _signal() -> None:
            stop_event.set()
            wake_event.set()

        try:
            loop.call_soon_threadsafe(_signal)
        except RuntimeError:
            logger.debug("Failed to signal reminder stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)
