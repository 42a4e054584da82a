"""ConnectionRegistry tests — add/remove lifecycle and open snapshots."""

import pytest
from starlette.websockets import WebSocketState

from bossme.realtime.connection import ConnectionState, PushConnection
from bossme.realtime.registry import ConnectionRegistry


class StubSocket:
    client_state = WebSocketState.CONNECTED

    async def send_text(self, text):
        pass

    async def close(self, code=1000, reason=None):
        self.client_state = WebSocketState.DISCONNECTED


def test_open_then_close_adds_and_removes_one_entry():
    registry = ConnectionRegistry()
    conn = PushConnection(StubSocket())
    conn.mark_open()

    registry.add(conn)
    assert len(registry) == 1
    assert conn in registry

    assert registry.remove(conn) is True
    assert len(registry) == 0


def test_removing_unknown_connection_is_noop():
    registry = ConnectionRegistry()
    registry.add(PushConnection(StubSocket()))

    assert registry.remove(PushConnection(StubSocket())) is False
    assert len(registry) == 1


def test_double_remove_is_noop():
    registry = ConnectionRegistry()
    conn = PushConnection(StubSocket())
    registry.add(conn)

    registry.remove(conn)
    assert registry.remove(conn) is False
    assert len(registry) == 0


def test_open_connections_excludes_not_ready():
    registry = ConnectionRegistry()
    connecting = PushConnection(StubSocket())
    live = PushConnection(StubSocket())
    live.mark_open()
    closed = PushConnection(StubSocket())
    closed.mark_closed()
    for c in (connecting, live, closed):
        registry.add(c)

    assert registry.open_connections() == {live}


@pytest.mark.asyncio
async def test_connection_close_is_idempotent():
    socket = StubSocket()
    conn = PushConnection(socket)
    conn.mark_open()

    await conn.close()
    await conn.close()

    assert conn.state is ConnectionState.CLOSED
    assert socket.client_state == WebSocketState.DISCONNECTED
