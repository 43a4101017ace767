# src/release_tracker/connectors/console_alerts.py

from __future__ import annotations

import logging
from datetime import datetime
from typing import TextIO

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleAlertSurface:
    """Prints reminders into the terminal (always permitted)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    async def display(self, *, title: str, body: str, tag: str) -> None:
        line = f"\n[{_ts_local()}] [REMINDER] {title}: {body} (#{tag})"
        print(line, file=self._stream, flush=True)
        logger.debug("Console alert shown tag=%s", tag)
