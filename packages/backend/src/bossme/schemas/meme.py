"""Pydantic schemas for memes, moderation, and votes.

Learn: Separate "Create" schemas (input) from "Read" schemas (output).
MemeRead is also what gets broadcast to live clients, so the WebSocket
payload and the REST response for a meme are the same shape.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MemeCreate(BaseModel):
    company: str = Field(..., min_length=1, max_length=100)
    city: str = Field(default="", max_length=100)
    image_url: str = Field(default="", max_length=2048)
    message: Optional[str] = Field(None, max_length=1000)


class MemeRead(BaseModel):
    id: int
    company: str
    city: str
    image_url: str
    message: Optional[str]
    user_id: Optional[int]
    username: Optional[str]
    votes: int
    approval_status: str
    rejection_reason: Optional[str]
    approved_by: Optional[int]
    approved_at: Optional[datetime]
    created_at: datetime

    model_config = {"from_attributes": True}


class ApprovalDecision(BaseModel):
    status: str = Field(..., pattern=r"^(approved|rejected)$")
    reason: Optional[str] = Field(None, max_length=1000)


class VoteRequest(BaseModel):
    """'up' adds the caller's vote, 'down' takes it back."""
    vote_type: str = Field(..., pattern=r"^(up|down)$")
