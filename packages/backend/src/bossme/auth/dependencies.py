"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to resolve the
bearer token into a User row. Three levels:
1. get_current_user_optional — anonymous allowed (public listings)
2. get_current_user — 401 without a valid token
3. require_roles(...) — 403 unless the user holds one of the roles
"""

import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bossme.auth.jwt import TokenError, verify_token
from bossme.db.engine import get_db
from bossme.db.models import User


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Resolve the caller, or None when no bearer token was sent."""
    if not authorization or not authorization.startswith("Bearer "):
        return None

    try:
        payload = verify_token(authorization[7:])
        public_id = uuid.UUID(payload["sub"])
    except (TokenError, ValueError) as e:
        raise _unauthorized(str(e))

    result = await db.execute(select(User).where(User.public_id == public_id))
    user = result.scalars().first()
    if not user:
        raise _unauthorized("User not found or account has been deleted")
    return user


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    if not user:
        raise _unauthorized("Authentication required")
    return user


def require_roles(*roles: str):
    """Dependency factory: the caller must hold one of `roles`."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail="Forbidden - Insufficient permissions",
            )
        return user

    return checker
