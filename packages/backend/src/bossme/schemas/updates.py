"""Response schema for the HTTP polling fallback."""

from typing import Any

from pydantic import BaseModel


class UpdateRead(BaseModel):
    type: str
    payload: Any
    timestamp: int


class UpdatesResponse(BaseModel):
    updates: list[UpdateRead]
    timestamp: int
    message: str
