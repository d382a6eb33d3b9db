"""Pydantic records and payloads for posts and comments."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from .users import utcnow


class CommentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    author_id: UUID
    text: str
    created_at: datetime = Field(default_factory=utcnow)


class PostRecord(BaseModel):
    """Stored representation of a post.

    ``visible_to`` restricts who may read the post; ``None`` or an empty set
    means the post is public. ``shared_from_id`` always names the original
    post of a share chain, never an intermediate share.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    author_id: UUID
    text: str = ""
    image_url: str | None = None
    likes: set[UUID] = Field(default_factory=set)
    comments: list[CommentRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    shared_from_id: UUID | None = None
    visible_to: set[UUID] | None = None


class PostCreate(BaseModel):
    text: str = Field(default="", max_length=5000)
    image_url: str | None = Field(default=None, max_length=1024)
    visible_to: set[UUID] | None = None


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)


class ShareRequest(BaseModel):
    caption: str = Field(default="", max_length=5000)
    target_user_ids: set[UUID] | None = None


class PostFeedResponse(BaseModel):
    """Envelope used when returning a collection of posts."""

    items: list[PostRecord]


__all__ = [
    "CommentRecord",
    "PostRecord",
    "PostCreate",
    "CommentCreate",
    "ShareRequest",
    "PostFeedResponse",
]
