"""Notifications derived on read from users, posts and messages."""
from __future__ import annotations

from uuid import UUID

from ..backends import Backend
from ..schemas import (
    CommentNotification,
    FriendRequestNotification,
    LikeNotification,
    MessageNotification,
    Notification,
    utcnow,
)
from .identity_service import get_user


async def list_notifications(store: Backend, user_id: UUID) -> list[Notification]:
    """Pending requests, activity on the user's posts and unread messages, newest first.

    Requests and likes carry no timestamp of their own; requests are stamped
    with the read time and likes with the time of the liked post.
    """

    user = await get_user(store, user_id)
    now = utcnow()
    items: list[Notification] = [
        FriendRequestNotification(user_id=user_id, created_at=now, requester_id=requester_id)
        for requester_id in user.friend_requests
    ]

    for post in await store.list_posts():
        if post.author_id != user_id:
            continue
        for liker_id in post.likes:
            if liker_id != user_id:
                items.append(
                    LikeNotification(user_id=user_id, created_at=post.created_at, post_id=post.id, liker_id=liker_id)
                )
        for comment in post.comments:
            if comment.author_id != user_id:
                items.append(
                    CommentNotification(
                        user_id=user_id,
                        created_at=comment.created_at,
                        post_id=post.id,
                        comment_id=comment.id,
                        author_id=comment.author_id,
                    )
                )

    for message in await store.list_messages():
        if message.to_id == user_id and not message.read:
            items.append(
                MessageNotification(
                    user_id=user_id, created_at=message.timestamp, message_id=message.id, from_id=message.from_id
                )
            )

    items.sort(key=lambda item: item.created_at, reverse=True)
    return items


__all__ = ["list_notifications"]
