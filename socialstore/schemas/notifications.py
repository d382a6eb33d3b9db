"""Notification variants, discriminated by ``kind``."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter


class _NotificationBase(BaseModel):
    user_id: UUID
    created_at: datetime
    read: bool = False


class FriendRequestNotification(_NotificationBase):
    kind: Literal["friend_request"] = "friend_request"
    requester_id: UUID


class LikeNotification(_NotificationBase):
    kind: Literal["like"] = "like"
    post_id: UUID
    liker_id: UUID


class CommentNotification(_NotificationBase):
    kind: Literal["comment"] = "comment"
    post_id: UUID
    comment_id: UUID
    author_id: UUID


class MessageNotification(_NotificationBase):
    kind: Literal["message"] = "message"
    message_id: UUID
    from_id: UUID


Notification = Annotated[
    Union[FriendRequestNotification, LikeNotification, CommentNotification, MessageNotification],
    Field(discriminator="kind"),
]

notification_adapter: TypeAdapter[Notification] = TypeAdapter(Notification)


class NotificationListResponse(BaseModel):
    items: list[Notification]


__all__ = [
    "FriendRequestNotification",
    "LikeNotification",
    "CommentNotification",
    "MessageNotification",
    "Notification",
    "notification_adapter",
    "NotificationListResponse",
]
