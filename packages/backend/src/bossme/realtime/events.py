"""Update event type and wire message shapes.

Learn: An event is a tagged union — a string `type` plus an opaque
payload. The queue stores the structured event; the WebSocket wire
format renames `payload` to `data` to match what the browser expects.
"""

import time
from dataclasses import dataclass
from typing import Any

# ─── Event types ─────────────────────────────────────────

NEW_MEME = "newMeme"
MEME_UPDATED = "memeUpdated"

# ─── Control messages ────────────────────────────────────

CONNECTION = "connection"
PING = "ping"
PONG = "pong"

CONNECTED_MESSAGE = "Connected to WebSocket server"
POLLING_FALLBACK_MESSAGE = "Using HTTP polling fallback instead of WebSockets"


def now_ms() -> int:
    """Wall-clock milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class UpdateEvent:
    type: str
    payload: Any
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload, "timestamp": self.timestamp}


def broadcast_message(event_type: str, payload: Any) -> dict[str, Any]:
    return {"type": event_type, "data": payload}


def connection_message() -> dict[str, Any]:
    return {"type": CONNECTION, "message": CONNECTED_MESSAGE}


def pong_message(timestamp: int) -> dict[str, Any]:
    return {"type": PONG, "timestamp": timestamp}
