"""Fan-out of cron job mutations to dashboard WebSocket clients."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger("cron_dashboard.ws_manager")

CRON_EVENTS = ("cron_created", "cron_updated", "cron_toggled", "cron_deleted")


class CronEventHub:
    """Keeps the open ``/ws/cron`` sockets and pushes job events to them.

    Each message is ``{"event", "jobId", "atMs", "data"}``. Sockets that fail
    on send are forgotten.
    """

    def __init__(self):
        self._clients: list[WebSocket] = []

    async def attach(self, ws: WebSocket):
        await ws.accept()
        self._clients.append(ws)
        logger.info("Cron events client attached (%d open)", len(self._clients))

    def detach(self, ws: WebSocket):
        if ws in self._clients:
            self._clients.remove(ws)
        logger.info("Cron events client detached (%d open)", len(self._clients))

    async def publish(self, event: str, job_id: str, **data: Any) -> int:
        """Send ``event`` for ``job_id``; returns how many clients received it."""
        if event not in CRON_EVENTS:
            raise ValueError(f"unknown cron event {event!r}")
        if not self._clients:
            return 0

        message = json.dumps(
            {"event": event, "jobId": job_id, "atMs": int(time.time() * 1000), "data": data},
            default=str,
        )
        delivered = 0
        for ws in list(self._clients):
            try:
                await ws.send_text(message)
                delivered += 1
            except Exception as exc:
                logger.debug("Dropping cron events client after send failure: %s", exc)
                self.detach(ws)
        return delivered


cron_events = CronEventHub()
