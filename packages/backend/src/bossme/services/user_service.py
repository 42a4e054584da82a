"""User service — the caller's own profile and admin user management.

Learn: Users are never removed. An admin "delete" anonymizes the row
and flags it, and the new username is copied onto the user's memes and
comments so nothing in the feed points at the old name.
"""

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bossme.db.models import ROLE_ADMIN, Comment, Meme, User
from bossme.schemas.meme import MemeRead
from bossme.schemas.user import Permissions, UserProfile, UserRead, UserStats

logger = structlog.get_logger()


class UserNotFoundError(Exception):
    """Raised when a user id does not exist."""
    pass


class SelfModificationError(Exception):
    """Raised when an admin tries to change or delete their own account."""
    pass


def user_profile(user: User) -> UserProfile:
    is_admin = user.role == ROLE_ADMIN
    is_moderator = user.is_staff
    return UserProfile(
        id=user.public_id,
        username=user.username,
        email=user.email,
        role=user.role,
        is_admin=is_admin,
        is_moderator=is_moderator,
        permissions=Permissions(
            can_create_memes=True,
            can_delete_memes=is_moderator,
            can_edit_memes=is_moderator,
            can_manage_users=is_admin,
            can_manage_roles=is_admin,
        ),
    )


class UserService:
    """Admin operations on users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self) -> list[User]:
        """Active users, newest first."""
        result = await self.db.execute(
            select(User)
            .where(User.is_deleted.is_(False))
            .order_by(User.created_at.desc(), User.id.desc())
        )
        return list(result.scalars().all())

    async def set_role(self, admin: User, user_id: int, role: str) -> User:
        if admin.id == user_id:
            raise SelfModificationError("Cannot change your own role")
        user = await self._load(user_id)
        previous = user.role
        user.role = role
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("users.role_changed", user_id=user_id, role=role, previous_role=previous, admin_id=admin.id)
        return user

    async def stats(self, user_id: int) -> UserStats:
        user = await self._load(user_id)
        totals = await self.db.execute(
            select(func.count(Meme.id), func.coalesce(func.sum(Meme.votes), 0))
            .where(Meme.user_id == user_id)
        )
        meme_count, total_votes = totals.one()
        memes = await self.db.execute(
            select(Meme)
            .where(Meme.user_id == user_id)
            .order_by(Meme.created_at.desc(), Meme.id.desc())
        )
        return UserStats(
            user=UserRead.model_validate(user),
            meme_count=meme_count,
            total_votes=total_votes,
            memes=[MemeRead.model_validate(m) for m in memes.scalars().all()],
        )

    async def soft_delete(self, admin: User, user_id: int) -> User:
        """Flag and anonymize a user, renaming their memes and comments too."""
        if admin.id == user_id:
            raise SelfModificationError("You cannot delete your own account")
        user = await self._load(user_id)

        anon_username = f"deleted_user_{user_id}"
        user.is_deleted = True
        user.username = anon_username
        user.email = f"deleted_{user_id}@deleted.user"
        await self.db.execute(
            update(Meme).where(Meme.user_id == user_id).values(username=anon_username)
        )
        await self.db.execute(
            update(Comment).where(Comment.user_id == user_id).values(username=anon_username)
        )
        await self.db.commit()
        await self.db.refresh(user)

        logger.info("users.deleted", user_id=user_id, admin_id=admin.id)
        return user

    async def _load(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise UserNotFoundError(f"User {user_id} not found")
        return user
