"""HTTP polling fallback for clients that cannot hold a WebSocket.

Learn: Stateless and unauthenticated. The payloads it relays are the same
records the public meme endpoints already return. Clients remember the
`timestamp` from each response and send it back as `since` next time.
"""

import re
from typing import Optional

from fastapi import APIRouter, Depends

from bossme.realtime.broadcast import BroadcastService
from bossme.realtime.dependencies import get_broadcaster
from bossme.schemas.updates import UpdatesResponse

router = APIRouter()

_LEADING_INT = re.compile(r"^\s*([-+]?\d+)")


def parse_since(raw: Optional[str]) -> int:
    """Lenient integer parse: a leading number counts, anything else is 0."""
    if not raw:
        return 0
    match = _LEADING_INT.match(raw)
    return int(match.group(1)) if match else 0


@router.get("/updates", response_model=UpdatesResponse)
async def get_updates(
    since: Optional[str] = None,
    broadcaster: BroadcastService = Depends(get_broadcaster),
):
    """Everything buffered after `since` (ms since epoch)."""
    return broadcaster.updates_since(parse_since(since))
