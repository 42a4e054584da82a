"""Routes about the calling user."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bossme.auth.dependencies import get_current_user
from bossme.db.engine import get_db
from bossme.db.models import User
from bossme.realtime.broadcast import BroadcastService
from bossme.realtime.dependencies import get_broadcaster
from bossme.schemas.meme import MemeRead
from bossme.schemas.user import UserProfile
from bossme.services.meme_service import MemeService
from bossme.services.user_service import user_profile

router = APIRouter(prefix="/users")


async def _active_user(user: User = Depends(get_current_user)) -> User:
    if user.is_deleted:
        raise HTTPException(
            status_code=403,
            detail="This account has been deactivated",
        )
    return user


@router.get("/me", response_model=UserProfile)
async def me(user: User = Depends(_active_user)):
    """Role and permission flags for the signed-in user."""
    return user_profile(user)


@router.get("/me/memes", response_model=list[MemeRead])
async def my_memes(
    user: User = Depends(_active_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastService = Depends(get_broadcaster),
):
    """The caller's memes in every moderation state, newest first."""
    return await MemeService(db, broadcaster).user_memes(user)
