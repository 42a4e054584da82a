"""Pydantic schemas for users, the caller's profile, and admin views."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from bossme.schemas.meme import MemeRead


class UserRead(BaseModel):
    id: int
    public_id: uuid.UUID
    username: str
    email: Optional[str]
    role: str
    is_deleted: bool
    meme_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class Permissions(BaseModel):
    can_create_memes: bool
    can_delete_memes: bool
    can_edit_memes: bool
    can_manage_users: bool
    can_manage_roles: bool


class UserProfile(BaseModel):
    """What the frontend needs to decide which controls to show."""
    id: uuid.UUID
    username: str
    email: Optional[str]
    role: str
    is_admin: bool
    is_moderator: bool
    permissions: Permissions


class RoleUpdate(BaseModel):
    role: str = Field(..., pattern=r"^(user|moderator|admin)$")


class UserStats(BaseModel):
    user: UserRead
    meme_count: int
    total_votes: int
    memes: list[MemeRead]


class UserDeleted(BaseModel):
    message: str
    username: str
