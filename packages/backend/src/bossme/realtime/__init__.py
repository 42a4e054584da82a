"""Real-time infrastructure — WebSocket push + HTTP polling fallback.

Learn: Events flow through two transports:
1. Domain handlers → BroadcastService → every open WebSocket (push)
2. BroadcastService → UpdatesQueue → GET /api/updates?since=T (pull)

The queue is a bounded ring buffer, so a poller that falls too far behind
silently loses the oldest events. Clients reconcile by refetching the
meme list when they reconnect.
"""

from dataclasses import dataclass

from bossme.realtime.broadcast import BroadcastService
from bossme.realtime.queue import UpdatesQueue
from bossme.realtime.registry import ConnectionRegistry


@dataclass
class Realtime:
    """The process-wide realtime objects, built once per app."""

    queue: UpdatesQueue
    registry: ConnectionRegistry
    broadcaster: BroadcastService


def create_realtime(
    capacity: int = 100,
    send_timeout: float = 5.0,
) -> Realtime:
    queue = UpdatesQueue(capacity=capacity)
    registry = ConnectionRegistry()
    broadcaster = BroadcastService(registry, queue, send_timeout=send_timeout)
    return Realtime(queue=queue, registry=registry, broadcaster=broadcaster)
