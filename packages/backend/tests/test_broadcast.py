"""BroadcastService tests — fan-out, skipping, isolation, and ordering.

Learn: Fake sockets stand in for Starlette WebSockets. They record what
was sent, and can be told to stall forever or to raise, which is how we
check that one bad client never holds up the others.
"""

import asyncio
import json
import time
from datetime import datetime, timezone

import pytest
from starlette.websockets import WebSocketState

from bossme.realtime.broadcast import DeliveryOutcome
from bossme.realtime.connection import PushConnection
from bossme.realtime.events import POLLING_FALLBACK_MESSAGE


class FakeSocket:
    def __init__(self, stall: bool = False, fail: bool = False):
        self.sent: list[dict] = []
        self.stall = stall
        self.fail = fail
        self.close_code = None
        self.client_state = WebSocketState.CONNECTED

    async def send_text(self, text: str) -> None:
        if self.stall:
            await asyncio.Event().wait()
        if self.fail:
            raise RuntimeError("connection reset by peer")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000, reason=None) -> None:
        self.close_code = code
        self.client_state = WebSocketState.DISCONNECTED


def _connect(registry, socket, open_=True) -> PushConnection:
    conn = PushConnection(socket)
    if open_:
        conn.mark_open()
    else:
        conn.mark_closed()
    registry.add(conn)
    return conn


@pytest.mark.asyncio
async def test_fans_out_to_open_connections_only(realtime):
    sockets = [FakeSocket() for _ in range(3)]
    for s in sockets:
        _connect(realtime.registry, s)
    closed = FakeSocket()
    _connect(realtime.registry, closed, open_=False)

    report = await realtime.broadcaster.broadcast("newMeme", {"id": 1})

    for s in sockets:
        assert s.sent == [{"type": "newMeme", "data": {"id": 1}}]
    assert closed.sent == []
    assert report.delivered == 3
    assert report.failed == 0
    # One queue entry no matter how many clients
    assert len(realtime.queue) == 1
    assert realtime.queue.query(0)[0].payload == {"id": 1}


@pytest.mark.asyncio
async def test_records_even_with_no_connections(realtime):
    report = await realtime.broadcaster.broadcast("memeUpdated", {"id": 2, "votes": 5})

    assert report.outcomes == {}
    [event] = realtime.queue.query(0)
    assert event.type == "memeUpdated"
    assert event.payload == {"id": 2, "votes": 5}


@pytest.mark.asyncio
async def test_stalled_client_does_not_block_others(realtime):
    fast = [FakeSocket() for _ in range(3)]
    for s in fast:
        _connect(realtime.registry, s)
    slow_socket = FakeSocket(stall=True)
    slow = _connect(realtime.registry, slow_socket)

    started = time.monotonic()
    report = await realtime.broadcaster.broadcast("newMeme", {"id": 3})
    elapsed = time.monotonic() - started

    for s in fast:
        assert s.sent == [{"type": "newMeme", "data": {"id": 3}}]
    assert report.outcomes[slow.id] is DeliveryOutcome.TIMED_OUT
    assert report.delivered == 3
    # Bounded by the send timeout, not by the stalled client
    assert elapsed < 2.0
    # The stalled client is dropped and closed
    assert slow not in realtime.registry
    assert slow_socket.close_code == 1011
    assert len(realtime.registry) == 3


@pytest.mark.asyncio
async def test_failing_client_is_dropped_and_others_still_served(realtime):
    ok = FakeSocket()
    _connect(realtime.registry, ok)
    broken = _connect(realtime.registry, FakeSocket(fail=True))

    report = await realtime.broadcaster.broadcast("newMeme", {"id": 4})

    assert ok.sent == [{"type": "newMeme", "data": {"id": 4}}]
    assert report.outcomes[broken.id] is DeliveryOutcome.FAILED
    assert broken not in realtime.registry
    assert len(realtime.queue) == 1


@pytest.mark.asyncio
async def test_concurrent_broadcasts_keep_call_order(realtime):
    sockets = [FakeSocket() for _ in range(2)]
    for s in sockets:
        _connect(realtime.registry, s)

    await asyncio.gather(*(
        realtime.broadcaster.broadcast("memeUpdated", {"n": n}) for n in range(10)
    ))

    for s in sockets:
        assert [m["data"]["n"] for m in s.sent] == list(range(10))
    assert [e.payload["n"] for e in realtime.queue.query(0)] == list(range(10))


@pytest.mark.asyncio
async def test_payload_is_json_encoded(realtime):
    s = FakeSocket()
    _connect(realtime.registry, s)
    created = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    await realtime.broadcaster.broadcast("newMeme", {"id": 5, "created_at": created})

    assert s.sent[0]["data"]["created_at"] == "2026-01-02T03:04:05+00:00"
    assert realtime.queue.query(0)[0].payload["created_at"] == "2026-01-02T03:04:05+00:00"


@pytest.mark.asyncio
async def test_named_wrappers_use_meme_event_types(realtime):
    await realtime.broadcaster.broadcast_new_meme({"id": 1})
    await realtime.broadcaster.broadcast_meme_updated({"id": 1, "votes": 1})

    assert [e.type for e in realtime.queue.query(0)] == ["newMeme", "memeUpdated"]


def test_updates_since_shape(realtime):
    realtime.queue.record("newMeme", {"id": 1})

    body = realtime.broadcaster.updates_since(0)

    assert body["message"] == POLLING_FALLBACK_MESSAGE
    assert isinstance(body["timestamp"], int)
    assert [u["type"] for u in body["updates"]] == ["newMeme"]
