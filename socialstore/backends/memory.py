"""In-process backend with an ordered change feed."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping, Sequence
from uuid import UUID

from ..constants import MESSAGES, POSTS, SESSION, USER_SCALAR_FIELDS, USERS
from ..errors import CapacityExceeded, HandleTaken, NotFound, ValidationFailed
from ..schemas import CommentRecord, MessageRecord, PostRecord, SessionSnapshot, UserRecord
from .base import Backend, ChangeEvent, ChangeListener, MutationOp, SetMutation, Unwatch, validate_mutations

logger = logging.getLogger(__name__)


class MemoryBackend(Backend):
    """Keeps every collection in dictionaries owned by one event loop.

    There is a single writer, so set mutations are applied in place. Records
    are copied on the way in and out; callers never hold a live reference to
    stored state. ``latency_ms`` delays every call to model a network round
    trip, and ``quota`` caps the total number of stored records.
    """

    name = "memory"
    supports_change_feed = True

    def __init__(self, *, latency_ms: int = 0, quota: int | None = None) -> None:
        self._users: dict[UUID, UserRecord] = {}
        self._posts: dict[UUID, PostRecord] = {}
        self._messages: dict[UUID, MessageRecord] = {}
        self._session: SessionSnapshot | None = None
        self._listeners: dict[str, list[ChangeListener]] = {}
        self._sequence = 0
        self._latency = latency_ms / 1000
        self._quota = quota

    async def _round_trip(self) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)

    def _ensure_room(self) -> None:
        if self._quota is None:
            return
        if len(self._users) + len(self._posts) + len(self._messages) >= self._quota:
            raise CapacityExceeded()

    # Change feed -----------------------------------------------------------

    def watch(self, collections: Iterable[str], listener: ChangeListener) -> Unwatch:
        names = list(dict.fromkeys(collections))
        for name in names:
            self._listeners.setdefault(name, []).append(listener)

        def _unwatch() -> None:
            for name in names:
                group = self._listeners.get(name)
                if group and listener in group:
                    group.remove(listener)

        return _unwatch

    def _emit(self, collection: str, kind: str, record_id: UUID | None = None) -> None:
        self._sequence += 1
        event = ChangeEvent(collection=collection, kind=kind, record_id=record_id, sequence=self._sequence)
        for listener in list(self._listeners.get(collection, ())):
            try:
                listener(event)
            except Exception:
                logger.exception("Change listener failed for %s event %d", collection, event.sequence)

    # Users -----------------------------------------------------------------

    def _handle_owner(self, handle: str) -> UUID | None:
        for user in self._users.values():
            if user.handle == handle:
                return user.id
        return None

    async def insert_user(self, user: UserRecord) -> UserRecord:
        await self._round_trip()
        if self._handle_owner(user.handle) is not None:
            raise HandleTaken()
        self._ensure_room()
        stored = user.model_copy(deep=True)
        self._users[stored.id] = stored
        self._emit(USERS, "insert", stored.id)
        return stored.model_copy(deep=True)

    async def get_user(self, user_id: UUID) -> UserRecord | None:
        await self._round_trip()
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def find_user_by_handle(self, handle: str) -> UserRecord | None:
        await self._round_trip()
        owner = self._handle_owner(handle)
        return self._users[owner].model_copy(deep=True) if owner else None

    async def list_users(self) -> list[UserRecord]:
        await self._round_trip()
        return [user.model_copy(deep=True) for user in self._users.values()]

    async def update_user_fields(self, user_id: UUID, fields: Mapping[str, Any]) -> UserRecord:
        await self._round_trip()
        unknown = set(fields) - USER_SCALAR_FIELDS
        if unknown:
            raise ValidationFailed(f"Cannot overwrite user fields: {', '.join(sorted(unknown))}")
        user = self._users.get(user_id)
        if user is None:
            raise NotFound("User not found")
        handle = fields.get("handle")
        if handle is not None:
            owner = self._handle_owner(handle)
            if owner is not None and owner != user_id:
                raise HandleTaken()
        updated = user.model_copy(update=dict(fields), deep=True)
        self._users[user_id] = updated
        self._emit(USERS, "update", user_id)
        return updated.model_copy(deep=True)

    async def delete_user(self, user_id: UUID) -> bool:
        await self._round_trip()
        removed = self._users.pop(user_id, None)
        if removed is None:
            return False
        self._emit(USERS, "delete", user_id)
        return True

    # Posts -----------------------------------------------------------------

    async def insert_post(self, post: PostRecord) -> PostRecord:
        await self._round_trip()
        self._ensure_room()
        stored = post.model_copy(deep=True)
        self._posts[stored.id] = stored
        self._emit(POSTS, "insert", stored.id)
        return stored.model_copy(deep=True)

    async def get_post(self, post_id: UUID) -> PostRecord | None:
        await self._round_trip()
        post = self._posts.get(post_id)
        return post.model_copy(deep=True) if post else None

    async def list_posts(self) -> list[PostRecord]:
        await self._round_trip()
        newest_inserted_first = list(reversed(self._posts.values()))
        ordered = sorted(newest_inserted_first, key=lambda post: post.created_at, reverse=True)
        return [post.model_copy(deep=True) for post in ordered]

    async def count_posts(self) -> int:
        await self._round_trip()
        return len(self._posts)

    async def delete_post(self, post_id: UUID) -> bool:
        await self._round_trip()
        if self._posts.pop(post_id, None) is None:
            return False
        self._emit(POSTS, "delete", post_id)
        return True

    async def evict_posts(self, capacity: int) -> list[UUID]:
        await self._round_trip()
        evicted: list[UUID] = []
        while len(self._posts) > capacity:
            oldest = next(iter(self._posts))
            del self._posts[oldest]
            evicted.append(oldest)
        for post_id in evicted:
            self._emit(POSTS, "delete", post_id)
        return evicted

    async def append_comment(self, post_id: UUID, comment: CommentRecord) -> PostRecord:
        await self._round_trip()
        post = self._posts.get(post_id)
        if post is None:
            raise NotFound("Post not found")
        post.comments.append(comment.model_copy(deep=True))
        self._emit(POSTS, "update", post_id)
        return post.model_copy(deep=True)

    # Messages --------------------------------------------------------------

    async def insert_message(self, message: MessageRecord) -> MessageRecord:
        await self._round_trip()
        self._ensure_room()
        stored = message.model_copy(deep=True)
        self._messages[stored.id] = stored
        self._emit(MESSAGES, "insert", stored.id)
        return stored.model_copy(deep=True)

    async def list_messages(self, pair: tuple[UUID, UUID] | None = None) -> list[MessageRecord]:
        await self._round_trip()
        wanted = frozenset(pair) if pair else None
        selected = [m for m in self._messages.values() if wanted is None or m.pair() == wanted]
        selected.sort(key=lambda message: message.timestamp)
        return [message.model_copy(deep=True) for message in selected]

    async def count_messages(self) -> int:
        await self._round_trip()
        return len(self._messages)

    async def evict_messages(self, count: int) -> list[UUID]:
        await self._round_trip()
        evicted = list(self._messages)[: max(count, 0)]
        for message_id in evicted:
            del self._messages[message_id]
        if evicted:
            self._emit(MESSAGES, "delete")
        return evicted

    async def mark_read(self, message_ids: Sequence[UUID]) -> int:
        await self._round_trip()
        changed = 0
        for message_id in message_ids:
            message = self._messages.get(message_id)
            if message is not None and not message.read:
                message.read = True
                changed += 1
        if changed:
            self._emit(MESSAGES, "update")
        return changed

    # Session slot ----------------------------------------------------------

    async def save_session(self, snapshot: SessionSnapshot) -> None:
        await self._round_trip()
        self._session = snapshot.model_copy(deep=True)
        self._emit(SESSION, "update")

    async def load_session(self) -> SessionSnapshot | None:
        await self._round_trip()
        return self._session.model_copy(deep=True) if self._session else None

    async def clear_session(self) -> None:
        await self._round_trip()
        self._session = None
        self._emit(SESSION, "delete")

    # Field-level set mutation ---------------------------------------------

    def _set_for(self, mutation: SetMutation) -> set[UUID]:
        owner: UserRecord | PostRecord | None
        if mutation.collection == USERS:
            owner = self._users.get(mutation.record_id)
        else:
            owner = self._posts.get(mutation.record_id)
        if owner is None:
            raise NotFound(f"{mutation.collection[:-1].capitalize()} not found")
        return getattr(owner, mutation.field)

    async def apply(self, mutations: Sequence[SetMutation]) -> None:
        await self._round_trip()
        checked = validate_mutations(mutations)
        # Resolve every target before touching any of them so a batch is all-or-nothing.
        targets = [(mutation, self._set_for(mutation)) for mutation in checked]
        touched: dict[tuple[str, UUID], None] = {}
        for mutation, members in targets:
            if mutation.op is MutationOp.ADD:
                members.add(mutation.value)
            else:
                members.discard(mutation.value)
            touched[(mutation.collection, mutation.record_id)] = None
        for collection, record_id in touched:
            self._emit(collection, "update", record_id)


__all__ = ["MemoryBackend"]
