"""SQLAlchemy ORM models — users, memes, comments, and votes.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Column types are the generic ones (Uuid, DateTime, String) so the same models
run on PostgreSQL in production and SQLite in the test suite.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Roles and moderation states
ROLE_USER = "user"
ROLE_MODERATOR = "moderator"
ROLE_ADMIN = "admin"
STAFF_ROLES = (ROLE_MODERATOR, ROLE_ADMIN)
ROLES = (ROLE_USER, ROLE_MODERATOR, ROLE_ADMIN)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"


class User(Base):
    """A person who signed in through an OAuth provider.

    Learn: public_id is what the outside world sees (it is the `sub` of
    our access tokens). The integer id never leaves the database.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    public_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_USER)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meme_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class Meme(Base):
    """A posted meme. Visible to everyone only once approved."""

    __tablename__ = "memes"
    __table_args__ = (
        Index("ix_memes_status_created", "approval_status", "created_at"),
        Index("ix_memes_votes", "votes"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company: Mapped[str] = mapped_column(String(100), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    message: Mapped[Optional[str]] = mapped_column(Text)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"))
    username: Mapped[Optional[str]] = mapped_column(String(50))
    votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=STATUS_PENDING
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"))
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


class UserVote(Base):
    """One upvote per user per meme. Removing the vote deletes the row."""

    __tablename__ = "user_votes"
    __table_args__ = (
        UniqueConstraint("user_id", "meme_id", name="uq_user_votes_user_meme"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    meme_id: Mapped[int] = mapped_column(Integer, ForeignKey("memes.id"), nullable=False)
    vote_type: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


class Comment(Base):
    """A comment on a meme, optionally a reply to another comment.

    Learn: Deleting a comment only blanks it (is_deleted + placeholder text),
    so replies below it keep their parent and the thread stays intact.
    """

    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_meme", "meme_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meme_id: Mapped[int] = mapped_column(Integer, ForeignKey("memes.id"), nullable=False)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"))
    username: Mapped[Optional[str]] = mapped_column(String(50))
    content: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("comments.id"))
    votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


class CommentVote(Base):
    """One upvote per user per comment, same rules as UserVote."""

    __tablename__ = "comment_votes"
    __table_args__ = (
        UniqueConstraint("user_id", "comment_id", name="uq_comment_votes_user_comment"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    comment_id: Mapped[int] = mapped_column(Integer, ForeignKey("comments.id"), nullable=False)
    vote_type: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
