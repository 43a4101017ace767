# src/release_tracker/connectors/matrix_alerts.py

from __future__ import annotations

import contextlib
import logging
from collections.abc import Awaitable, Callable

from nio import AsyncClient, RoomSendError

from ..config import matrix_rooms_or_none
from ..reminders.errors import AlertPermissionError, ReminderError
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)

ClientFactory = Callable[[object], Awaitable[AsyncClient | None]]


class MatrixAlertSurface:
    """
    Posts fired reminders as m.notice messages into the configured rooms.

    The client is created lazily on the first alert, inside the reminder loop
    that uses it. "Not configured", "login failed" and M_FORBIDDEN in every room
    count as permission denial; other send errors keep the reminder pending.
    """

    def __init__(self, settings, *, client_factory: ClientFactory = create_matrix_client) -> None:
        self._settings = settings
        self._client_factory = client_factory
        self._client: AsyncClient | None = None
        self._unavailable = False

    async def _ensure_client(self) -> AsyncClient | None:
        if self._client is not None or self._unavailable:
            return self._client
        self._client = await self._client_factory(self._settings)
        if self._client is None:
            # Do not retry a failing login on every reminder; restart to try again.
            self._unavailable = True
        return self._client

    async def display(self, *, title: str, body: str, tag: str) -> None:
        rooms = matrix_rooms_or_none(self._settings)
        if rooms is None:
            raise AlertPermissionError("no Matrix rooms configured (RELTRACK_MATRIX_ROOMS)")

        client = await self._ensure_client()
        if client is None:
            raise AlertPermissionError("Matrix client is not available")

        content = {
            "msgtype": "m.notice",
            "body": f"{title}: {body}",
            "org.release_tracker.reminder_id": tag,
        }

        failed: dict[str, str | None] = {}
        for room_id in rooms:
            resp = await client.room_send(
                room_id=room_id,
                message_type="m.room.message",
                content=content,
                ignore_unverified_devices=True,
            )
            if isinstance(resp, RoomSendError):
                logger.warning("Matrix send failed room=%s: %s", room_id, resp.message)
                failed[room_id] = resp.status_code

        if len(failed) < len(rooms):
            return
        if all(code == "M_FORBIDDEN" for code in failed.values()):
            raise AlertPermissionError(f"not allowed to post in {', '.join(failed)}")
        raise ReminderError(f"Matrix send failed in all rooms: {', '.join(failed)}")

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            with contextlib.suppress(Exception):
                await client.close()
