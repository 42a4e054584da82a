"""Registry of live push-transport connections."""

import structlog

from bossme.realtime.connection import PushConnection

logger = structlog.get_logger()


class ConnectionRegistry:
    """Set of currently connected WebSocket clients.

    Learn: add/remove never suspend, so on a single event loop they are
    atomic with respect to the broadcaster iterating a snapshot.
    """

    def __init__(self):
        self._connections: set[PushConnection] = set()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: PushConnection) -> bool:
        return connection in self._connections

    def add(self, connection: PushConnection) -> None:
        self._connections.add(connection)
        logger.debug("realtime.registry_add", connection_id=connection.id, size=len(self))

    def remove(self, connection: PushConnection) -> bool:
        """Drop a connection. Unknown connections are a no-op (returns False)."""
        if connection not in self._connections:
            return False
        self._connections.discard(connection)
        logger.debug("realtime.registry_remove", connection_id=connection.id, size=len(self))
        return True

    def open_connections(self) -> set[PushConnection]:
        """Snapshot of connections that are ready to receive."""
        return {c for c in self._connections if c.is_open}
