# src/release_tracker/reminders/clock.py

from __future__ import annotations

import asyncio
from datetime import UTC, datetime


class SystemClock:
    """Wall clock + asyncio sleep. Tests inject a fake with the same shape."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))
