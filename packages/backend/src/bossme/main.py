"""FastAPI application factory.

Learn: create_app() builds the app and its realtime hub (update queue,
connection registry, broadcaster). The hub hangs off app.state and is
handed to routes through dependencies, so each app instance, and each
test, owns its own queue and registry.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from bossme import __version__
from bossme.api import api_router
from bossme.api.updates import router as updates_router
from bossme.config import settings
from bossme.realtime import Realtime, create_realtime

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "bossme.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        ws_path=settings.ws_path,
        queue_capacity=app.state.realtime.queue.capacity,
    )

    if settings.create_tables:
        from bossme.db.engine import engine
        from bossme.db.models import Base
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("bossme.tables_created")
        except Exception as e:
            logger.warning("bossme.database_unavailable", error=str(e))

    yield

    logger.info("bossme.shutdown")

    # Say goodbye to anyone still connected
    registry = app.state.realtime.registry
    for conn in list(registry.open_connections()):
        registry.remove(conn)
        await conn.close(code=1001, reason="server shutdown")

    from bossme.db.engine import engine
    await engine.dispose()


def create_app(realtime: Optional[Realtime] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="bossme.me",
        description="Workplace memes with live updates",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.realtime = realtime or create_realtime(
        capacity=settings.updates_queue_capacity,
        send_timeout=settings.ws_send_timeout_seconds,
    )

    from bossme.middleware.request_id import RequestIdMiddleware

    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    # Bare /updates for pollers configured without the /api prefix
    app.include_router(updates_router, include_in_schema=False)

    from bossme.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: bossme.main:app)
app = create_app()
