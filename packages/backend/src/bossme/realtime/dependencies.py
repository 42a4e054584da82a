"""FastAPI dependencies that hand out the app's realtime objects.

Learn: The hub lives on app.state (built in the app factory), not in a
module global. Tests build a fresh app, or swap app.state.realtime, and
get a clean queue and registry.
"""

from fastapi import Depends
from starlette.requests import HTTPConnection

from bossme.realtime import Realtime
from bossme.realtime.broadcast import BroadcastService
from bossme.realtime.registry import ConnectionRegistry


def get_realtime(conn: HTTPConnection) -> Realtime:
    """Works for both HTTP requests and WebSocket sessions."""
    return conn.app.state.realtime


def get_broadcaster(realtime: Realtime = Depends(get_realtime)) -> BroadcastService:
    return realtime.broadcaster


def get_registry(realtime: Realtime = Depends(get_realtime)) -> ConnectionRegistry:
    return realtime.registry
