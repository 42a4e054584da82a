"""API route aggregation.

All routers registered here get mounted in main.py under /api.
Auth is declared per route: listings are public, posting and voting
need a user, moderation needs staff, and the admin router needs admin.
"""

from fastapi import APIRouter

from bossme.api.admin import router as admin_router
from bossme.api.comments import router as comments_router
from bossme.api.health import router as health_router
from bossme.api.memes import router as memes_router
from bossme.api.updates import router as updates_router
from bossme.api.users import router as users_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(updates_router, tags=["updates"])
api_router.include_router(memes_router, tags=["memes"])
api_router.include_router(comments_router, tags=["comments"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(admin_router, tags=["admin"])
