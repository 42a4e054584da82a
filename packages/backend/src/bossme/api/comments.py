"""Comment API routes — threads under /memes/{meme_id}/comments."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bossme.auth.dependencies import get_current_user
from bossme.db.engine import get_db
from bossme.db.models import User
from bossme.schemas.comment import CommentCreate, CommentDeleted, CommentRead
from bossme.schemas.meme import VoteRequest
from bossme.services.comment_service import CommentNotFoundError, CommentService
from bossme.services.meme_service import (
    MemeNotFoundError,
    PermissionDeniedError,
    VoteConflictError,
)

router = APIRouter(prefix="/memes/{meme_id}/comments")


def _svc(db: AsyncSession = Depends(get_db)) -> CommentService:
    return CommentService(db)


@router.get("", response_model=list[CommentRead])
async def list_comments(meme_id: int, svc: CommentService = Depends(_svc)):
    """Top-level comments with their replies nested inside."""
    try:
        return await svc.list_tree(meme_id)
    except MemeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=CommentRead, status_code=201)
async def add_comment(
    meme_id: int,
    body: CommentCreate,
    user: User = Depends(get_current_user),
    svc: CommentService = Depends(_svc),
):
    try:
        return await svc.add(meme_id, user, body.content, body.parent_id)
    except (MemeNotFoundError, CommentNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/{comment_id}/vote", response_model=CommentRead)
async def vote_comment(
    meme_id: int,
    comment_id: int,
    body: VoteRequest,
    user: User = Depends(get_current_user),
    svc: CommentService = Depends(_svc),
):
    try:
        return await svc.vote(meme_id, comment_id, user, body.vote_type)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except VoteConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{comment_id}", response_model=CommentDeleted)
async def delete_comment(
    meme_id: int,
    comment_id: int,
    user: User = Depends(get_current_user),
    svc: CommentService = Depends(_svc),
):
    try:
        comment = await svc.delete(meme_id, comment_id, user)
    except CommentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return CommentDeleted(comment=CommentRead.model_validate(comment))
