"""JWT token creation and verification."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from bossme.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    public_id: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token for a user's public id."""
    expires = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": str(public_id),
        "type": "access",
        "exp": expires,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if payload.get("type") != "access" or not payload.get("sub"):
        raise TokenError("Invalid token: not an access token")
    return payload
