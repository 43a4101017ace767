# src/release_tracker/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Checklist task status.

    Only PLANNED tasks are eligible for a reminder to fire.
    """

    PLANNED = "PLANNED"
    DONE = "DONE"
    NOT_APPLICABLE = "NOT_APPLICABLE"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PLANNED
        try:
            return cls(raw)
        except ValueError:
            return cls.PLANNED

    @classmethod
    def parse(cls, raw: str) -> TaskStatus:
        """Strict variant for user input; raises ValueError on unknown names."""
        key = (raw or "").strip().upper().replace("-", "_")
        if key in ("NA", "N/A"):
            key = "NOT_APPLICABLE"
        return cls(key)

    @property
    def is_closed(self) -> bool:
        return self is not TaskStatus.PLANNED


@dataclass(slots=True)
class Task:
    id: str
    release_id: str
    sequence: int
    title: str
    status: TaskStatus

    # ISO-8601 instant of the planned reminder, if any.
    proposed_date_time: str | None = None
    completed_at: str | None = None
