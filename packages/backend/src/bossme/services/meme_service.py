"""Meme service — submission, moderation, and voting.

Learn: Every mutation follows the same order: write, commit, then
broadcast. Broadcasting only after the commit means a live client never
hears about a change that later rolled back. The broadcast itself never
raises, so a dead WebSocket cannot turn a successful vote into a 500.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bossme.db.models import (
    STATUS_APPROVED,
    STATUS_PENDING,
    Comment,
    Meme,
    User,
    UserVote,
)
from bossme.realtime.broadcast import BroadcastService
from bossme.schemas.meme import MemeRead

logger = structlog.get_logger()


class MemeNotFoundError(Exception):
    """Raised when a meme id does not exist."""
    pass


class VoteConflictError(Exception):
    """Raised for a double upvote or removing a vote that was never cast."""
    pass


class PermissionDeniedError(Exception):
    """Raised when the caller may not see or change a meme."""
    pass


def meme_payload(meme: Meme) -> dict:
    """The shape both REST responses and live updates carry."""
    return MemeRead.model_validate(meme).model_dump(mode="json")


def _window_start(window: str, now: datetime) -> Optional[datetime]:
    if window == "now":
        return now - timedelta(hours=1)
    if window == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if window == "week":
        return now - timedelta(days=7)
    return None


class MemeService:
    """Business logic for memes."""

    def __init__(self, db: AsyncSession, broadcaster: BroadcastService):
        self.db = db
        self.broadcaster = broadcaster

    # ─── Reads ──────────────────────────────────────────

    async def list_memes(
        self,
        viewer: Optional[User] = None,
        company: Optional[str] = None,
        city: Optional[str] = None,
        window: Optional[str] = None,
        sort: str = "recent",
    ) -> list[Meme]:
        """Feed listing. Only staff see pending and rejected memes."""
        now = datetime.now(timezone.utc)
        query = select(Meme).where(Meme.created_at <= now)
        if company:
            query = query.where(Meme.company == company)
        if city:
            query = query.where(Meme.city == city)
        if window:
            start = _window_start(window, now)
            if start is not None:
                query = query.where(Meme.created_at >= start)
        if viewer is None or not viewer.is_staff:
            query = query.where(Meme.approval_status == STATUS_APPROVED)

        if sort == "upvoted":
            query = query.order_by(Meme.votes.desc(), Meme.created_at.desc(), Meme.id.desc())
        elif sort == "commented":
            comment_count = (
                select(func.count(Comment.id))
                .where(Comment.meme_id == Meme.id)
                .correlate(Meme)
                .scalar_subquery()
            )
            query = query.order_by(comment_count.desc(), Meme.created_at.desc(), Meme.id.desc())
        else:
            query = query.order_by(Meme.created_at.desc(), Meme.id.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def top_memes(self, limit: int = 10) -> list[Meme]:
        result = await self.db.execute(
            select(Meme)
            .where(Meme.approval_status == STATUS_APPROVED)
            .order_by(Meme.votes.desc(), Meme.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def pending_memes(self) -> list[Meme]:
        result = await self.db.execute(
            select(Meme)
            .where(Meme.approval_status == STATUS_PENDING)
            .order_by(Meme.created_at.asc(), Meme.id.asc())
        )
        return list(result.scalars().all())

    async def user_memes(self, user: User) -> list[Meme]:
        """Everything a user posted, whatever its moderation state, newest first."""
        result = await self.db.execute(
            select(Meme)
            .where(Meme.user_id == user.id)
            .order_by(Meme.created_at.desc(), Meme.id.desc())
        )
        return list(result.scalars().all())

    async def get_meme(self, meme_id: int, viewer: Optional[User] = None) -> Meme:
        meme = await self._load(meme_id)
        if meme.approval_status != STATUS_APPROVED:
            is_author = viewer is not None and viewer.id == meme.user_id
            if not (is_author or (viewer is not None and viewer.is_staff)):
                raise PermissionDeniedError("You do not have permission to view this meme")
        return meme

    # ─── Writes ─────────────────────────────────────────

    async def create_meme(
        self,
        author: User,
        company: str,
        city: str = "",
        image_url: str = "",
        message: Optional[str] = None,
    ) -> Meme:
        """Post a meme. Staff posts skip the moderation queue."""
        self._ensure_active(author)
        status = STATUS_APPROVED if author.is_staff else STATUS_PENDING
        meme = Meme(
            company=company,
            city=city,
            image_url=image_url,
            message=message or None,
            user_id=author.id,
            username=author.username,
            approval_status=status,
        )
        if status == STATUS_APPROVED:
            meme.approved_by = author.id
            meme.approved_at = datetime.now(timezone.utc)
        self.db.add(meme)
        author.meme_count = (author.meme_count or 0) + 1
        await self.db.commit()
        await self.db.refresh(meme)

        logger.info("memes.created", meme_id=meme.id, user_id=author.id, status=status)
        if status == STATUS_APPROVED:
            await self.broadcaster.broadcast_new_meme(meme_payload(meme))
        return meme

    async def moderate(
        self,
        meme_id: int,
        moderator: User,
        status: str,
        reason: Optional[str] = None,
    ) -> Meme:
        """Approve or reject. The first approval publishes the meme to live clients."""
        self._ensure_active(moderator)
        meme = await self._load(meme_id)
        previous_status = meme.approval_status
        meme.approval_status = status
        meme.rejection_reason = reason or None
        meme.approved_by = moderator.id
        meme.approved_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(meme)

        logger.info(
            "memes.moderated",
            meme_id=meme.id,
            status=status,
            previous_status=previous_status,
            moderator_id=moderator.id,
        )
        if status == STATUS_APPROVED and previous_status != STATUS_APPROVED:
            await self.broadcaster.broadcast_new_meme(meme_payload(meme))
        return meme

    async def vote(self, meme_id: int, user: User, vote_type: str) -> Meme:
        """'up' casts the user's single vote, 'down' withdraws it."""
        self._ensure_active(user)
        meme = await self._load(meme_id)

        user_id = user.id
        has_voted = await self._has_voted(user, meme)
        if vote_type == "up" and has_voted:
            raise VoteConflictError("You have already voted for this meme")
        if vote_type == "down" and not has_voted:
            raise VoteConflictError("You have not voted for this meme yet")

        try:
            if vote_type == "up":
                self.db.add(UserVote(user_id=user.id, meme_id=meme.id, vote_type=1))
                await self.db.flush()
                delta = 1
            else:
                await self.db.execute(
                    delete(UserVote).where(
                        UserVote.user_id == user.id, UserVote.meme_id == meme.id
                    )
                )
                delta = -1
            await self.db.execute(
                update(Meme).where(Meme.id == meme.id).values(votes=Meme.votes + delta)
            )
            await self.db.commit()
        except IntegrityError:
            # a concurrent request inserted the same (user, meme) vote
            await self.db.rollback()
            logger.info("memes.vote_conflict", meme_id=meme_id, user_id=user_id)
            raise VoteConflictError("You have already voted for this meme")
        await self.db.refresh(meme)

        logger.info("memes.voted", meme_id=meme.id, user_id=user.id, vote_type=vote_type, votes=meme.votes)
        await self.broadcaster.broadcast_meme_updated(meme_payload(meme))
        return meme

    # ─── Helpers ────────────────────────────────────────

    async def _load(self, meme_id: int) -> Meme:
        meme = await self.db.get(Meme, meme_id)
        if not meme:
            raise MemeNotFoundError(f"Meme {meme_id} not found")
        return meme

    async def _has_voted(self, user: User, meme: Meme) -> bool:
        result = await self.db.execute(
            select(UserVote.id).where(
                UserVote.user_id == user.id, UserVote.meme_id == meme.id
            )
        )
        return result.first() is not None

    @staticmethod
    def _ensure_active(user: User) -> None:
        if user.is_deleted:
            raise PermissionDeniedError(
                "Your account has been deactivated and cannot perform this action."
            )
