"""Conversation store: direct messages between two users."""
from __future__ import annotations

import logging
from uuid import UUID

from ..backends import Backend
from ..config import get_settings
from ..errors import NotFound, ValidationFailed
from ..schemas import InboxEntry, MessageRecord
from .identity_service import get_user

logger = logging.getLogger(__name__)


async def send_message(
    store: Backend,
    message: MessageRecord,
    *,
    high_water: int | None = None,
    eviction_batch: int | None = None,
) -> MessageRecord:
    """Append ``message`` and trim the oldest batch once past the high-water mark."""

    settings = get_settings()
    high_water = high_water or settings.message_high_water
    eviction_batch = eviction_batch or settings.message_eviction_batch

    text = (message.text or "").strip()
    if not text:
        raise ValidationFailed("Message text cannot be empty")
    if await store.get_user(message.to_id) is None:
        raise NotFound("Recipient not found")

    stored = await store.insert_message(message.model_copy(update={"text": text}))

    if await store.count_messages() > high_water:
        evicted = await store.evict_messages(eviction_batch)
        logger.info("Evicted %d oldest messages past the high-water mark of %d", len(evicted), high_water)
    return stored


async def conversation(store: Backend, user_id: UUID, friend_id: UUID) -> list[MessageRecord]:
    """Messages exchanged between the two users, oldest first."""

    return await store.list_messages((user_id, friend_id))


async def last_message(store: Backend, user_id: UUID, friend_id: UUID) -> MessageRecord | None:
    """Newest message of the pair; on equal timestamps the earliest inserted wins."""

    messages = await conversation(store, user_id, friend_id)
    if not messages:
        return None
    newest = messages[-1].timestamp
    return next(message for message in messages if message.timestamp == newest)


async def mark_conversation_read(store: Backend, *, reader_id: UUID, friend_id: UUID) -> int:
    unread = [
        message.id
        for message in await conversation(store, reader_id, friend_id)
        if message.to_id == reader_id and not message.read
    ]
    if not unread:
        return 0
    return await store.mark_read(unread)


async def unread_count(store: Backend, user_id: UUID, friend_id: UUID | None = None) -> int:
    pair = (user_id, friend_id) if friend_id is not None else None
    return sum(
        1 for message in await store.list_messages(pair) if message.to_id == user_id and not message.read
    )


async def list_inbox(store: Backend, user_id: UUID) -> list[InboxEntry]:
    """One entry per friend, most recently active conversation first."""

    user = await get_user(store, user_id)
    messages = await store.list_messages()
    entries: list[InboxEntry] = []
    for friend_id in user.friends:
        friend = await store.get_user(friend_id)
        if friend is None:
            continue
        thread = [message for message in messages if message.pair() == frozenset((user_id, friend_id))]
        entries.append(
            InboxEntry(
                friend=friend.to_public(),
                last_message=thread[-1] if thread else None,
                unread=sum(1 for message in thread if message.to_id == user_id and not message.read),
            )
        )
    active = sorted(
        (entry for entry in entries if entry.last_message is not None),
        key=lambda entry: entry.last_message.timestamp,
        reverse=True,
    )
    return active + [entry for entry in entries if entry.last_message is None]


__all__ = [
    "send_message",
    "conversation",
    "last_message",
    "mark_conversation_read",
    "unread_count",
    "list_inbox",
]
