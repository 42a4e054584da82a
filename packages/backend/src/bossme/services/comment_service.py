"""Comment service — threaded comments on memes, their votes and deletion.

Learn: Comments are stored flat (parent_id points at the comment being
answered) and assembled into a tree on read. Deletion is a soft delete:
the text is replaced with a placeholder so replies keep their context.
"""

from typing import Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bossme.db.models import Comment, CommentVote, Meme, User
from bossme.schemas.comment import CommentRead
from bossme.services.meme_service import (
    MemeNotFoundError,
    PermissionDeniedError,
    VoteConflictError,
)

logger = structlog.get_logger()

DELETED_BY_STAFF = "[comment removed by a moderator]"
DELETED_BY_AUTHOR = "[comment deleted by its author]"


class CommentNotFoundError(Exception):
    """Raised when a comment id does not exist on the given meme."""
    pass


def build_comment_tree(comments: list[Comment]) -> list[CommentRead]:
    """Nest replies under their parents, keeping the input order per level.

    A reply whose parent is not in `comments` is promoted to the top level
    rather than dropped.
    """
    nodes = {c.id: CommentRead.model_validate(c) for c in comments}
    roots: list[CommentRead] = []
    for c in comments:
        node = nodes[c.id]
        parent = nodes.get(c.parent_id) if c.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            parent.replies.append(node)
    return roots


class CommentService:
    """Business logic for comments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_tree(self, meme_id: int) -> list[CommentRead]:
        """All comments on a meme, most voted first at every level."""
        await self._load_meme(meme_id)
        result = await self.db.execute(
            select(Comment)
            .where(Comment.meme_id == meme_id)
            .order_by(Comment.votes.desc(), Comment.created_at.desc(), Comment.id.desc())
        )
        return build_comment_tree(list(result.scalars().all()))

    async def add(
        self,
        meme_id: int,
        author: User,
        content: str,
        parent_id: Optional[int] = None,
    ) -> Comment:
        if author.is_deleted:
            raise PermissionDeniedError(
                "Your account has been deactivated and cannot post new comments."
            )
        await self._load_meme(meme_id)
        if parent_id is not None:
            try:
                await self._load(meme_id, parent_id)
            except CommentNotFoundError:
                raise CommentNotFoundError("Parent comment not found")

        comment = Comment(
            meme_id=meme_id,
            user_id=author.id,
            username=author.username,
            content=content,
            parent_id=parent_id,
        )
        self.db.add(comment)
        await self.db.commit()
        await self.db.refresh(comment)

        logger.info(
            "comments.created",
            comment_id=comment.id,
            meme_id=meme_id,
            parent_id=parent_id,
            user_id=author.id,
        )
        return comment

    async def vote(self, meme_id: int, comment_id: int, user: User, vote_type: str) -> Comment:
        """'up' casts the user's single vote, 'down' withdraws it."""
        if user.is_deleted:
            raise PermissionDeniedError(
                "Your account has been deactivated and cannot vote on comments."
            )
        comment = await self._load(meme_id, comment_id)

        user_id = user.id
        existing = await self.db.execute(
            select(CommentVote.id).where(
                CommentVote.user_id == user_id, CommentVote.comment_id == comment_id
            )
        )
        has_voted = existing.first() is not None
        if vote_type == "up" and has_voted:
            raise VoteConflictError("You have already voted for this comment")
        if vote_type == "down" and not has_voted:
            raise VoteConflictError("You have not voted for this comment yet")

        try:
            if vote_type == "up":
                self.db.add(CommentVote(user_id=user_id, comment_id=comment_id, vote_type=1))
                await self.db.flush()
                delta = 1
            else:
                await self.db.execute(
                    delete(CommentVote).where(
                        CommentVote.user_id == user_id, CommentVote.comment_id == comment_id
                    )
                )
                delta = -1
            await self.db.execute(
                update(Comment)
                .where(Comment.id == comment_id)
                .values(votes=Comment.votes + delta)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise VoteConflictError("You have already voted for this comment")
        await self.db.refresh(comment)

        logger.info("comments.voted", comment_id=comment_id, user_id=user_id, vote_type=vote_type)
        return comment

    async def delete(self, meme_id: int, comment_id: int, user: User) -> Comment:
        """Blank a comment. Allowed for its author and for staff."""
        comment = await self._load(meme_id, comment_id)
        is_owner = comment.user_id == user.id
        if not (is_owner or user.is_staff):
            raise PermissionDeniedError("Not authorized to delete this comment")

        comment.content = DELETED_BY_STAFF if user.is_staff else DELETED_BY_AUTHOR
        comment.is_deleted = True
        await self.db.commit()
        await self.db.refresh(comment)

        logger.info(
            "comments.deleted",
            comment_id=comment_id,
            meme_id=meme_id,
            user_id=user.id,
            by_staff=user.is_staff,
        )
        return comment

    # ─── Helpers ────────────────────────────────────────

    async def _load_meme(self, meme_id: int) -> Meme:
        meme = await self.db.get(Meme, meme_id)
        if not meme:
            raise MemeNotFoundError(f"Meme {meme_id} not found")
        return meme

    async def _load(self, meme_id: int, comment_id: int) -> Comment:
        comment = await self.db.get(Comment, comment_id)
        if not comment or comment.meme_id != meme_id:
            raise CommentNotFoundError("Comment not found")
        return comment
