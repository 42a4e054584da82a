"""UpdatesQueue tests — ring-buffer bound, ordering, and `since` queries."""

import pytest

from bossme.realtime.queue import UpdatesQueue


def _clock(*values):
    """Deterministic clock that returns the given timestamps in order."""
    it = iter(values)
    return lambda: next(it)


def test_keeps_only_last_n_in_call_order():
    q = UpdatesQueue(capacity=3)
    for n in range(5):
        q.record("x", {"n": n})

    events = q.query(0)
    assert [e.payload["n"] for e in events] == [2, 3, 4]
    assert len(q) == 3


def test_timestamps_never_decrease():
    q = UpdatesQueue()
    for n in range(50):
        q.record("x", {"n": n})

    stamps = [e.timestamp for e in q.query(0)]
    assert stamps == sorted(stamps)


def test_clock_stepping_back_is_clamped():
    q = UpdatesQueue(clock=_clock(500, 400, 600))
    q.record("a", {})
    q.record("b", {})
    q.record("c", {})

    assert [e.timestamp for e in q.query(0)] == [500, 500, 600]


def test_query_since_is_strictly_after():
    q = UpdatesQueue(clock=_clock(10, 20, 30))
    for t in ("a", "b", "c"):
        q.record(t, {})

    assert [e.type for e in q.query(15)] == ["b", "c"]
    assert q.query(30) == []
    assert [e.type for e in q.query(0)] == ["a", "b", "c"]


def test_query_is_idempotent():
    q = UpdatesQueue(clock=_clock(10, 20))
    q.record("a", {"n": 1})
    q.record("b", {"n": 2})

    assert q.query(5) == q.query(5)


def test_evicted_history_is_silently_truncated():
    """A poller that fell behind gets what is left, with no gap marker."""
    q = UpdatesQueue(capacity=2, clock=_clock(10, 20, 30))
    for t in ("a", "b", "c"):
        q.record(t, {})

    # Client last saw t=5; event "a" at t=10 is gone and nothing says so
    assert [e.type for e in q.query(5)] == ["b", "c"]


def test_empty_queue_returns_nothing():
    assert UpdatesQueue().query(0) == []


def test_clear_empties_queue():
    q = UpdatesQueue()
    q.record("x", {})
    q.clear()
    assert len(q) == 0
    assert q.query(0) == []


def test_record_returns_stamped_event():
    q = UpdatesQueue(clock=lambda: 1234)
    event = q.record("newMeme", {"id": 7})
    assert event.to_dict() == {"type": "newMeme", "payload": {"id": 7}, "timestamp": 1234}


def test_rejects_zero_capacity():
    with pytest.raises(ValueError):
        UpdatesQueue(capacity=0)
