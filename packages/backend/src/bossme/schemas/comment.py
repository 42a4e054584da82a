"""Pydantic schemas for comments.

Learn: CommentRead is recursive. The listing endpoint returns only
top-level comments, each carrying its replies (and theirs) inline.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    parent_id: Optional[int] = None


class CommentRead(BaseModel):
    id: int
    meme_id: int
    user_id: Optional[int]
    username: Optional[str]
    content: str
    parent_id: Optional[int]
    votes: int
    is_deleted: bool
    created_at: datetime
    replies: list["CommentRead"] = []

    model_config = {"from_attributes": True}


class CommentDeleted(BaseModel):
    success: bool = True
    message: str = "Comment deleted successfully"
    comment: CommentRead
