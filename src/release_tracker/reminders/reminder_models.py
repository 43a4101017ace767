# src/release_tracker/reminders/reminder_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum


class ReminderState(StrEnum):
    """
    Record lifecycle: pending -> fired | suppressed.

    Both terminal states are final; nothing moves a record back to pending.
    """

    PENDING = "pending"
    FIRED = "fired"
    SUPPRESSED = "suppressed"


def to_utc(when: datetime) -> datetime:
    """Normalize to an aware UTC datetime (naive values are taken as local time)."""
    if when.tzinfo is None:
        when = when.astimezone()
    return when.astimezone(UTC)


def format_instant(when: datetime) -> str:
    return to_utc(when).isoformat(timespec="seconds")


def parse_instant(raw: object) -> datetime | None:
    """
    Parse a stored ISO-8601 instant.

    Returns None for anything unparseable; stored naive values are read as UTC.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        dt = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def make_record_id(task_id: str, scheduled_for: str) -> str:
    """
    Deterministic record id for (task, instant).

    Equal instants written in different offsets map to the same id.
    """
    parsed = parse_instant(scheduled_for)
    instant = format_instant(parsed) if parsed is not None else scheduled_for
    return f"{task_id}@{instant}"


@dataclass(slots=True, frozen=True)
class NotificationRecord:
    id: str
    task_id: str
    release_id: str
    scheduled_for: str
    fired_at: str | None = None
    suppressed: bool = False

    @classmethod
    def new(cls, *, task_id: str, release_id: str, when: datetime) -> NotificationRecord:
        scheduled_for = format_instant(when)
        return cls(
            id=make_record_id(task_id, scheduled_for),
            task_id=task_id,
            release_id=release_id,
            scheduled_for=scheduled_for,
        )

    @property
    def state(self) -> ReminderState:
        if self.suppressed:
            return ReminderState.SUPPRESSED
        if self.fired_at:
            return ReminderState.FIRED
        return ReminderState.PENDING

    @property
    def is_pending(self) -> bool:
        return self.state is ReminderState.PENDING

    def scheduled_at(self) -> datetime | None:
        return parse_instant(self.scheduled_for)
