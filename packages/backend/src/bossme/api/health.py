"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from bossme import __version__
from bossme.db.engine import get_db
from bossme.realtime import Realtime
from bossme.realtime.dependencies import get_realtime

router = APIRouter()


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    realtime: Realtime = Depends(get_realtime),
):
    """Check server health, database connectivity, and live-update load."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {
        "status": status,
        **checks,
        "realtime": {
            "connections": len(realtime.registry.open_connections()),
            "buffered_updates": len(realtime.queue),
        },
    }
