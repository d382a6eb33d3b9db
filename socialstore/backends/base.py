"""Abstract storage contract shared by every backend."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Sequence
from uuid import UUID

from ..constants import SET_FIELDS
from ..errors import ValidationFailed
from ..schemas import CommentRecord, MessageRecord, PostRecord, SessionSnapshot, UserRecord


class MutationOp(str, Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class SetMutation:
    """Field-level membership change on a set-valued field.

    ``add`` is a set union and ``remove`` a set difference, so concurrent
    writers converge regardless of the order in which they commit.
    """

    collection: str
    record_id: UUID
    field: str
    op: MutationOp
    value: UUID

    @classmethod
    def add(cls, collection: str, record_id: UUID, field: str, value: UUID) -> "SetMutation":
        return cls(collection, record_id, field, MutationOp.ADD, value)

    @classmethod
    def remove(cls, collection: str, record_id: UUID, field: str, value: UUID) -> "SetMutation":
        return cls(collection, record_id, field, MutationOp.REMOVE, value)


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """Notification that a write to ``collection`` has been committed."""

    collection: str
    kind: str
    record_id: UUID | None
    sequence: int


ChangeListener = Callable[[ChangeEvent], None]
Unwatch = Callable[[], None]


def validate_mutations(mutations: Iterable[SetMutation]) -> list[SetMutation]:
    checked: list[SetMutation] = []
    for mutation in mutations:
        allowed = SET_FIELDS.get(mutation.collection, frozenset())
        if mutation.field not in allowed:
            raise ValidationFailed(f"{mutation.collection}.{mutation.field} is not a set field")
        checked.append(mutation)
    return checked


class Backend(ABC):
    """Storage for the ``users``, ``posts`` and ``messages`` collections and the session slot.

    Every method is a suspension point. Implementations raise the typed
    failures from :mod:`socialstore.errors`; they never return partial writes.
    """

    name: str = "abstract"
    supports_change_feed: bool = False

    # Users -----------------------------------------------------------------

    @abstractmethod
    async def insert_user(self, user: UserRecord) -> UserRecord: ...

    @abstractmethod
    async def get_user(self, user_id: UUID) -> UserRecord | None: ...

    @abstractmethod
    async def find_user_by_handle(self, handle: str) -> UserRecord | None: ...

    @abstractmethod
    async def list_users(self) -> list[UserRecord]: ...

    @abstractmethod
    async def update_user_fields(self, user_id: UUID, fields: Mapping[str, Any]) -> UserRecord:
        """Overwrite scalar profile fields; set fields are rejected."""

    @abstractmethod
    async def delete_user(self, user_id: UUID) -> bool: ...

    # Posts -----------------------------------------------------------------

    @abstractmethod
    async def insert_post(self, post: PostRecord) -> PostRecord: ...

    @abstractmethod
    async def get_post(self, post_id: UUID) -> PostRecord | None: ...

    @abstractmethod
    async def list_posts(self) -> list[PostRecord]:
        """Return every post, newest first."""

    @abstractmethod
    async def count_posts(self) -> int: ...

    @abstractmethod
    async def delete_post(self, post_id: UUID) -> bool: ...

    @abstractmethod
    async def evict_posts(self, capacity: int) -> list[UUID]:
        """Remove the oldest posts until at most ``capacity`` remain."""

    @abstractmethod
    async def append_comment(self, post_id: UUID, comment: CommentRecord) -> PostRecord: ...

    # Messages --------------------------------------------------------------

    @abstractmethod
    async def insert_message(self, message: MessageRecord) -> MessageRecord: ...

    @abstractmethod
    async def list_messages(self, pair: tuple[UUID, UUID] | None = None) -> list[MessageRecord]:
        """Return messages ascending by timestamp, ties in insertion order."""

    @abstractmethod
    async def count_messages(self) -> int: ...

    @abstractmethod
    async def evict_messages(self, count: int) -> list[UUID]:
        """Remove the ``count`` oldest messages by insertion order."""

    @abstractmethod
    async def mark_read(self, message_ids: Sequence[UUID]) -> int: ...

    # Session slot ----------------------------------------------------------

    @abstractmethod
    async def save_session(self, snapshot: SessionSnapshot) -> None: ...

    @abstractmethod
    async def load_session(self) -> SessionSnapshot | None: ...

    @abstractmethod
    async def clear_session(self) -> None: ...

    # Field-level set mutation ---------------------------------------------

    @abstractmethod
    async def apply(self, mutations: Sequence[SetMutation]) -> None:
        """Apply a batch of set mutations atomically."""

    # Change feed -----------------------------------------------------------

    def watch(self, collections: Iterable[str], listener: ChangeListener) -> Unwatch:
        raise NotImplementedError(f"{self.name} backend has no change feed")

    async def close(self) -> None:
        return None


__all__ = [
    "Backend",
    "ChangeEvent",
    "ChangeListener",
    "MutationOp",
    "SetMutation",
    "Unwatch",
    "validate_mutations",
]
