"""Schemas used by the conversation store."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from .users import UserPublic, utcnow


class MessageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    from_id: UUID
    to_id: UUID
    text: str
    timestamp: datetime = Field(default_factory=utcnow)
    read: bool = False

    def pair(self) -> frozenset[UUID]:
        return frozenset((self.from_id, self.to_id))


class MessageSendRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class ConversationResponse(BaseModel):
    friend_id: UUID
    messages: list[MessageRecord]


class InboxEntry(BaseModel):
    friend: UserPublic
    last_message: MessageRecord | None = None
    unread: int = 0


__all__ = ["MessageRecord", "MessageSendRequest", "ConversationResponse", "InboxEntry"]
