# src/release_tracker/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.state import AppState
from ..reminders.errors import ReminderError, friendly_reminder_error_message
from ..reminders.reminder_models import NotificationRecord, parse_instant
from ..tasks.task_models import TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /remind, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_local(raw: str | None) -> str:
    dt = parse_instant(raw)
    if dt is None:
        return raw or "-"
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")


def _fmt_record(rec: NotificationRecord) -> str:
    extra = f" fired {_fmt_local(rec.fired_at)}" if rec.fired_at else ""
    return f"  [{rec.state.value:<10}] {_fmt_local(rec.scheduled_for)} {rec.id}{extra}"


def _parse_when(parts: list[str]) -> datetime:
    raw = " ".join(parts).strip()
    if not raw:
        raise ValueError("missing date/time (e.g. 2026-03-02T09:30)")
    try:
        return datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValueError(f"cannot parse date/time {raw!r}; use ISO format like 2026-03-02 09:30") from e


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    runner = state.runner
    running = "ON" if runner is not None and runner.running else "OFF"
    return (
        "Status:\n"
        f"  Reminder loop: {running}\n"
        f"  Armed timers: {len(state.scheduler.registry)}\n"
        f"  Max single wait: {getattr(settings, 'reminder_max_wait_seconds', '?')}s\n"
        f"  Database: {getattr(settings, 'db_path', '?')}"
    )


def cmd_task(state: AppState, args: list[str]) -> str:
    """
    /task add <release_id> <title...>
    """
    if len(args) < 3 or args[0].lower() != "add":
        return "Usage: /task add <release_id> <title...>"
    try:
        task = state.task_store.add_task(release_id=args[1], title=" ".join(args[2:]))
    except ValueError as e:
        return f"Task not added: {e}"
    return f"Added task {task.id}: {task.title}"


def cmd_tasks(state: AppState, args: list[str]) -> str:
    release_id = args[0] if args else None
    tasks = state.task_store.list_tasks(release_id)
    if not tasks:
        return "No tasks." if not release_id else f"No tasks for release {release_id}."
    lines = ["Tasks:"]
    for t in tasks:
        when = f" reminder {_fmt_local(t.proposed_date_time)}" if t.proposed_date_time else ""
        lines.append(f"  {t.id} [{t.status.value}] {t.title}{when}")
    return "\n".join(lines)


def _set_status(state: AppState, args: list[str], status: TaskStatus) -> str:
    if not args:
        return "Usage: /<done|na|reopen> <task_id>"
    task_id = args[0]
    try:
        task = state.task_store.update_task_status(task_id, status)
    except LookupError:
        return f"Unknown task: {task_id}"

    try:
        if status.is_closed:
            suppressed = state.reminders.on_task_completed(task.id)
            note = f" ({len(suppressed)} pending reminder(s) suppressed)" if suppressed else ""
        else:
            state.reminders.on_task_reopened(task.id)
            note = " (reminders are not restored; use /remind)"
    except ReminderError as e:
        return f"Task {task.id} is {status.value}, but: {friendly_reminder_error_message(e)}"
    return f"Task {task.id} is {status.value}{note}"


def cmd_done(state: AppState, args: list[str]) -> str:
    return _set_status(state, args, TaskStatus.DONE)


def cmd_na(state: AppState, args: list[str]) -> str:
    return _set_status(state, args, TaskStatus.NOT_APPLICABLE)


def cmd_reopen(state: AppState, args: list[str]) -> str:
    return _set_status(state, args, TaskStatus.PLANNED)


def cmd_remind(state: AppState, args: list[str]) -> str:
    """
    /remind <task_id> <when>   (ISO date/time, local time unless an offset is given)
    """
    if len(args) < 2:
        return "Usage: /remind <task_id> <YYYY-MM-DD HH:MM>"
    try:
        rec = state.reminders.schedule(args[0], _parse_when(args[1:]))
    except (ReminderError, ValueError) as e:
        return friendly_reminder_error_message(e)
    return f"Reminder set for {rec.task_id} at {_fmt_local(rec.scheduled_for)}."


def cmd_snooze(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /snooze <task_id> <minutes>"
    try:
        rec = state.reminders.snooze(args[0], float(args[1]))
    except (ReminderError, ValueError) as e:
        return friendly_reminder_error_message(e)
    return f"Snoozed {rec.task_id} until {_fmt_local(rec.scheduled_for)}."


def cmd_clear(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /clear <task_id>"
    try:
        suppressed = state.reminders.clear(args[0])
    except (ReminderError, ValueError) as e:
        return friendly_reminder_error_message(e)
    return f"Reminder cleared for {args[0]} ({len(suppressed)} pending suppressed)."


def cmd_reminders(state: AppState, args: list[str]) -> str:
    task_id = args[0] if args else None
    try:
        records = state.reminders.list_reminders(task_id)
    except ReminderError as e:
        return friendly_reminder_error_message(e)
    if not records:
        return "No reminders."
    return "\n".join(["Reminders:"] + [_fmt_record(r) for r in records])


def cmd_recheck(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    runner = state.runner
    if runner is None or not runner.running:
        return "Reminder loop is not running."
    if emit:
        emit(f"[REMINDERS] Rechecking ({len(state.scheduler.registry)} timer(s) armed)...")
    runner.wake()
    return "Reminder recheck requested."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show reminder loop status.")
registry.register("task", cmd_task, help_text="Add a checklist task: /task add <release> <title>.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [release].")
registry.register("done", cmd_done, help_text="Mark a task DONE: /done <task>.")
registry.register("na", cmd_na, help_text="Mark a task NOT_APPLICABLE: /na <task>.")
registry.register("reopen", cmd_reopen, help_text="Move a task back to PLANNED: /reopen <task>.")
registry.register("remind", cmd_remind, help_text="Set a reminder: /remind <task> <YYYY-MM-DD HH:MM>.")
registry.register("snooze", cmd_snooze, help_text="Push a reminder: /snooze <task> <minutes>.")
registry.register("clear", cmd_clear, help_text="Remove a task's reminder: /clear <task>.")
registry.register("reminders", cmd_reminders, help_text="Show reminder history: /reminders [task].")
registry.register("recheck", cmd_recheck, help_text="Ask the reminder loop to reconcile now.")
