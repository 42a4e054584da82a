"""Bounded in-memory queue of recent updates for polling clients.

Learn: This is a ring buffer, not a cache. Every record() appends and,
once the buffer is full, drops the oldest event. query(since) answers
"what happened after T" for clients on the HTTP polling fallback.

Weak guarantee: a poller whose `since` is older than the oldest retained
event just gets everything still buffered. It cannot tell evicted events
from events that never happened.
"""

from collections import deque
from threading import Lock
from typing import Any, Callable

from bossme.realtime.events import UpdateEvent, now_ms


class UpdatesQueue:
    """FIFO of the last `capacity` update events."""

    def __init__(self, capacity: int = 100, clock: Callable[[], int] = now_ms):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._clock = clock
        self._events: deque[UpdateEvent] = deque(maxlen=capacity)
        # sync routes run in a threadpool, so guard the deque
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def record(self, event_type: str, payload: Any) -> UpdateEvent:
        """Stamp the event with the current time and append it.

        Timestamps never go backwards: if the clock steps back, the new
        event reuses the last stored timestamp.
        """
        with self._lock:
            ts = self._clock()
            if self._events and ts < self._events[-1].timestamp:
                ts = self._events[-1].timestamp
            event = UpdateEvent(type=event_type, payload=payload, timestamp=ts)
            self._events.append(event)
        return event

    def query(self, since: int = 0) -> list[UpdateEvent]:
        """All buffered events with timestamp > since, oldest first."""
        with self._lock:
            return [e for e in self._events if e.timestamp > since]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
