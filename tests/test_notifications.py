"""Derived notification tests."""
from __future__ import annotations

from uuid import UUID, uuid4

import pytest

from socialstore.backends import Backend
from socialstore.schemas import (
    CommentRecord,
    LikeNotification,
    MessageRecord,
    PostCreate,
    UserRecord,
)
from socialstore.schemas.notifications import notification_adapter
from socialstore.services import friendship_service, identity_service, message_service, notification_service, post_service


async def _user(store: Backend, handle: str) -> UUID:
    return await identity_service.create_user(store, UserRecord(handle=handle, display_name=handle.title()), "secret")


def test_notification_kind_selects_variant() -> None:
    payload = {
        "kind": "like",
        "user_id": str(uuid4()),
        "created_at": "2024-01-01T00:00:00+00:00",
        "post_id": str(uuid4()),
        "liker_id": str(uuid4()),
    }
    parsed = notification_adapter.validate_python(payload)
    assert isinstance(parsed, LikeNotification)


@pytest.mark.asyncio
async def test_notifications_derived_from_activity(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    post = await post_service.publish_post(store, alice_id, PostCreate(text="mine"))

    await friendship_service.send_friend_request(store, from_id=bob_id, to_handle="alice1")
    await post_service.like(store, post.id, bob_id)
    await post_service.like(store, post.id, alice_id)
    await post_service.add_comment(store, post.id, CommentRecord(author_id=bob_id, text="nice"))
    await post_service.add_comment(store, post.id, CommentRecord(author_id=alice_id, text="thanks"))
    await message_service.send_message(store, MessageRecord(from_id=bob_id, to_id=alice_id, text="hey"))

    items = await notification_service.list_notifications(store, alice_id)

    kinds = sorted(item.kind for item in items)
    assert kinds == ["comment", "friend_request", "like", "message"]
    assert all(item.user_id == alice_id for item in items)
    assert [item.created_at for item in items] == sorted((item.created_at for item in items), reverse=True)
    assert items[0].kind == "friend_request"

    await message_service.mark_conversation_read(store, reader_id=alice_id, friend_id=bob_id)
    after_read = await notification_service.list_notifications(store, alice_id)
    assert "message" not in {item.kind for item in after_read}
    assert await notification_service.list_notifications(store, bob_id) == []
