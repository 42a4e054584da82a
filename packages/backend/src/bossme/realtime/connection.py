"""One push-transport client and its lifecycle state."""

import asyncio
import enum
import json
import uuid
from typing import Any

from starlette.websockets import WebSocket, WebSocketState


class ConnectionState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class PushConnection:
    """A WebSocket plus the state the broadcaster cares about.

    Learn: Sends go through a per-connection lock. The broadcaster fans
    out to all connections concurrently, so without the lock two
    back-to-back broadcasts could interleave on the same socket and
    arrive out of order.
    """

    def __init__(self, socket: WebSocket, connection_id: str | None = None):
        self.id = connection_id or uuid.uuid4().hex
        self.socket = socket
        self.state = ConnectionState.CONNECTING
        self._send_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<PushConnection {self.id} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def mark_open(self) -> None:
        self.state = ConnectionState.OPEN

    def mark_closed(self) -> None:
        self.state = ConnectionState.CLOSED

    async def send_text(self, text: str) -> None:
        async with self._send_lock:
            await self.socket.send_text(text)

    async def send_json(self, message: dict[str, Any]) -> None:
        await self.send_text(json.dumps(message))

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        """Close the underlying socket once. Later calls do nothing."""
        if self.state is ConnectionState.CLOSED:
            return
        self.mark_closed()
        if self.socket.client_state == WebSocketState.CONNECTED:
            await self.socket.close(code=code, reason=reason)
