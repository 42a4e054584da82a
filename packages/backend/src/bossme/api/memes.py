"""Meme API routes — feed, submission, moderation, votes.

Learn: Routes handle HTTP concerns (status codes, error responses),
MemeService handles business logic and the live-update broadcast.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bossme.auth.dependencies import (
    get_current_user,
    get_current_user_optional,
    require_roles,
)
from bossme.db.engine import get_db
from bossme.db.models import STAFF_ROLES, User
from bossme.realtime.broadcast import BroadcastService
from bossme.realtime.dependencies import get_broadcaster
from bossme.schemas.meme import ApprovalDecision, MemeCreate, MemeRead, VoteRequest
from bossme.services.meme_service import (
    MemeNotFoundError,
    MemeService,
    PermissionDeniedError,
    VoteConflictError,
)

router = APIRouter(prefix="/memes")

_staff = require_roles(*STAFF_ROLES)


def _svc(
    db: AsyncSession = Depends(get_db),
    broadcaster: BroadcastService = Depends(get_broadcaster),
) -> MemeService:
    return MemeService(db, broadcaster)


@router.get("", response_model=list[MemeRead])
async def list_memes(
    company: Optional[str] = None,
    city: Optional[str] = None,
    time: Optional[str] = Query(None, pattern=r"^(now|today|week|all)$"),
    sort: str = Query("recent", pattern=r"^(recent|upvoted|commented)$"),
    viewer: Optional[User] = Depends(get_current_user_optional),
    svc: MemeService = Depends(_svc),
):
    return await svc.list_memes(viewer, company=company, city=city, window=time, sort=sort)


@router.get("/top", response_model=list[MemeRead])
async def top_memes(svc: MemeService = Depends(_svc)):
    return await svc.top_memes()


@router.get("/pending", response_model=list[MemeRead])
async def pending_memes(
    _: User = Depends(_staff),
    svc: MemeService = Depends(_svc),
):
    return await svc.pending_memes()


@router.get("/{meme_id}", response_model=MemeRead)
async def get_meme(
    meme_id: int,
    viewer: Optional[User] = Depends(get_current_user_optional),
    svc: MemeService = Depends(_svc),
):
    try:
        return await svc.get_meme(meme_id, viewer)
    except MemeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("", response_model=MemeRead, status_code=201)
async def create_meme(
    body: MemeCreate,
    user: User = Depends(get_current_user),
    svc: MemeService = Depends(_svc),
):
    """Post a meme. Regular users' memes wait for moderation."""
    try:
        return await svc.create_meme(
            user,
            company=body.company,
            city=body.city,
            image_url=body.image_url,
            message=body.message,
        )
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.put("/{meme_id}/approval", response_model=MemeRead)
async def moderate_meme(
    meme_id: int,
    body: ApprovalDecision,
    moderator: User = Depends(_staff),
    svc: MemeService = Depends(_svc),
):
    try:
        return await svc.moderate(meme_id, moderator, body.status, body.reason)
    except MemeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/{meme_id}/vote", response_model=MemeRead)
async def vote_meme(
    meme_id: int,
    body: VoteRequest,
    user: User = Depends(get_current_user),
    svc: MemeService = Depends(_svc),
):
    try:
        return await svc.vote(meme_id, user, body.vote_type)
    except MemeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except VoteConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))
