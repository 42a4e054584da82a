"""Broadcast service — fan-out point for every live update.

Learn: broadcast() does two things for each event:
1. Pushes the JSON message to every open WebSocket connection
2. Records the structured event in the UpdatesQueue for pollers

Push delivery is at-most-once and best-effort. Each send gets its own
task with a timeout, so one stalled browser cannot hold up the rest.
A connection that times out is closed and dropped from the registry;
it catches up through polling or a fresh reconnect.
"""

import asyncio
import enum
import json
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi.encoders import jsonable_encoder

from bossme.realtime.connection import PushConnection
from bossme.realtime.events import (
    MEME_UPDATED,
    NEW_MEME,
    POLLING_FALLBACK_MESSAGE,
    UpdateEvent,
    broadcast_message,
    now_ms,
)
from bossme.realtime.queue import UpdatesQueue
from bossme.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


class DeliveryOutcome(str, enum.Enum):
    DELIVERED = "delivered"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class BroadcastReport:
    """What happened to one broadcast, per connection."""

    event: UpdateEvent
    outcomes: dict[str, DeliveryOutcome] = field(default_factory=dict)

    @property
    def delivered(self) -> int:
        return sum(1 for o in self.outcomes.values() if o is DeliveryOutcome.DELIVERED)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.delivered


class BroadcastService:
    """Pushes events to WebSocket clients and buffers them for pollers."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        queue: UpdatesQueue,
        send_timeout: float = 5.0,
    ):
        self.registry = registry
        self.queue = queue
        self.send_timeout = send_timeout

    async def broadcast(self, event_type: str, payload: Any) -> BroadcastReport:
        """Deliver an event to every open connection and record it.

        Send tasks are created and the event is recorded before the first
        await, so queue order and per-connection order both follow call
        order even when several handlers broadcast at once.
        """
        data = jsonable_encoder(payload)
        message = json.dumps(broadcast_message(event_type, data))

        targets = list(self.registry.open_connections())
        tasks = [
            asyncio.create_task(self._deliver(conn, message)) for conn in targets
        ]
        event = self.queue.record(event_type, data)

        report = BroadcastReport(event=event)
        if tasks:
            results = await asyncio.gather(*tasks)
            for conn, outcome in zip(targets, results):
                report.outcomes[conn.id] = outcome

        logger.info(
            "realtime.broadcast",
            event_type=event_type,
            connections=len(targets),
            delivered=report.delivered,
            failed=report.failed,
        )
        return report

    async def broadcast_new_meme(self, meme: Any) -> BroadcastReport:
        return await self.broadcast(NEW_MEME, meme)

    async def broadcast_meme_updated(self, meme: Any) -> BroadcastReport:
        return await self.broadcast(MEME_UPDATED, meme)

    def updates_since(self, since: int) -> dict[str, Any]:
        """Response body for the HTTP polling fallback."""
        return {
            "updates": [e.to_dict() for e in self.queue.query(since)],
            "timestamp": now_ms(),
            "message": POLLING_FALLBACK_MESSAGE,
        }

    async def _deliver(self, conn: PushConnection, message: str) -> DeliveryOutcome:
        try:
            await asyncio.wait_for(conn.send_text(message), timeout=self.send_timeout)
            return DeliveryOutcome.DELIVERED
        except asyncio.TimeoutError:
            logger.warning(
                "realtime.delivery_failed",
                connection_id=conn.id,
                reason="timeout",
                timeout=self.send_timeout,
            )
            self.registry.remove(conn)
            await self._close_quietly(conn, reason="send timeout")
            return DeliveryOutcome.TIMED_OUT
        except Exception as e:
            logger.warning(
                "realtime.delivery_failed",
                connection_id=conn.id,
                reason="error",
                error=str(e),
            )
            self.registry.remove(conn)
            conn.mark_closed()
            return DeliveryOutcome.FAILED

    async def _close_quietly(self, conn: PushConnection, reason: str) -> None:
        try:
            await asyncio.wait_for(conn.close(code=1011, reason=reason), timeout=self.send_timeout)
        except Exception as e:
            # the socket is already being torn down; nothing else to do
            conn.mark_closed()
            logger.debug("realtime.close_failed", connection_id=conn.id, error=str(e))
