# src/release_tracker/connectors/alerts.py

from __future__ import annotations

import logging

from ..core.ports import AlertSurface
from ..reminders.errors import AlertPermissionError

logger = logging.getLogger(__name__)


class FanOutAlertSurface:
    """
    Shows one alert on several surfaces (console + Matrix).

    Succeeds if any surface displayed it. If every surface refused, the alert
    counts as permission-denied; otherwise the first real failure is raised.
    """

    def __init__(self, surfaces: list[AlertSurface]) -> None:
        if not surfaces:
            raise ValueError("at least one alert surface is required")
        self._surfaces = list(surfaces)

    async def display(self, *, title: str, body: str, tag: str) -> None:
        errors: list[Exception] = []
        shown = 0
        for surface in self._surfaces:
            try:
                await surface.display(title=title, body=body, tag=tag)
                shown += 1
            except Exception as e:
                logger.warning("Alert surface %s failed for %s: %r", type(surface).__name__, tag, e)
                errors.append(e)

        if shown:
            return
        real = [e for e in errors if not isinstance(e, AlertPermissionError)]
        if real:
            raise real[0]
        raise errors[0]
