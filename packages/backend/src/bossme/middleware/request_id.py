"""Request ID middleware — tag every HTTP request and its log lines.

Learn: A caller-supplied X-Request-ID is trusted only if it looks like
an id (short, printable, no whitespace), otherwise a fresh UUID is
used. The id, method and path are bound to structlog's contextvars, so
the service logs for a vote or a poll carry them, and one
`http.request` line per request records status and latency.

WebSocket upgrades never pass through here: BaseHTTPMiddleware only
sees HTTP scopes, and /ws logs with its own connection_id.
"""

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

logger = structlog.get_logger()


def resolve_request_id(incoming: str | None) -> str:
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request id, bind it for logging, echo it back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        # Pollers hit /updates every few seconds
        log = logger.debug if request.url.path.endswith("/updates") else logger.info
        log(
            "http.request",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
