"""Schemas for friend requests and friend state."""
from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from .users import UserPublic

FriendStatus = Literal["self", "friend", "incoming", "outgoing", "none"]


class FriendRequestPayload(BaseModel):
    handle: str = Field(..., min_length=1, max_length=150)


class FriendState(BaseModel):
    """Snapshot of one user's side of the social graph."""

    user_id: UUID
    friends: list[UserPublic]
    incoming_requests: list[UserPublic]
    outgoing_requests: list[UserPublic]


class FriendStatusResponse(BaseModel):
    user_id: UUID
    status: FriendStatus


__all__ = ["FriendStatus", "FriendRequestPayload", "FriendState", "FriendStatusResponse"]
