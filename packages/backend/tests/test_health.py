"""Health endpoint tests."""

import pytest


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status, version, and realtime load."""
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["realtime"] == {"connections": 0, "buffered_updates": 0}


@pytest.mark.asyncio
async def test_health_counts_buffered_updates(client, realtime):
    realtime.queue.record("newMeme", {"id": 1})
    data = (await client.get("/api/health")).json()
    assert data["realtime"]["buffered_updates"] == 1
