"""WebSocket endpoint — push transport for live updates.

Learn: Each browser tab holds one connection. The handler:
1. Accepts the handshake and registers the connection
2. Sends a connection acknowledgement
3. Answers {"type": "ping"} with {"type": "pong", "timestamp": ...}
4. Unregisters on disconnect, whatever the cause

Broadcasts do not flow through this handler. The BroadcastService
writes straight to the registered connections.
"""

import json

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from bossme.config import settings
from bossme.realtime.connection import PushConnection
from bossme.realtime.dependencies import get_registry
from bossme.realtime.events import PING, connection_message, now_ms, pong_message
from bossme.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()
router = APIRouter()


@router.websocket(settings.ws_path)
async def updates_websocket(
    websocket: WebSocket,
    registry: ConnectionRegistry = Depends(get_registry),
):
    await serve_connection(websocket, registry)


async def serve_connection(websocket: WebSocket, registry: ConnectionRegistry) -> None:
    """Run one connection from handshake to close."""
    conn = PushConnection(websocket)
    await websocket.accept()
    conn.mark_open()
    registry.add(conn)
    logger.info("realtime.client_connected", connection_id=conn.id, connections=len(registry))

    try:
        await conn.send_json(connection_message())
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None and message.get("bytes") is not None:
                raw = message["bytes"].decode("utf-8", errors="replace")
            await _handle_client_message(conn, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("realtime.connection_error", connection_id=conn.id)
    finally:
        registry.remove(conn)
        await conn.close()
        logger.info(
            "realtime.client_disconnected",
            connection_id=conn.id,
            connections=len(registry),
        )


async def _handle_client_message(conn: PushConnection, raw: str | None) -> None:
    try:
        msg = json.loads(raw or "")
    except json.JSONDecodeError as e:
        logger.warning("realtime.malformed_message", connection_id=conn.id, error=str(e))
        return
    if not isinstance(msg, dict):
        logger.warning("realtime.malformed_message", connection_id=conn.id, error="not an object")
        return

    if msg.get("type") == PING:
        logger.debug("realtime.ping", connection_id=conn.id)
        await conn.send_json(pong_message(now_ms()))
    else:
        logger.info("realtime.unknown_message", connection_id=conn.id, message_type=msg.get("type"))
