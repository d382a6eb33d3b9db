"""Pydantic records and payloads for users."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..constants import MAX_HANDLE_LENGTH, MIN_HANDLE_LENGTH


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Presence(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"


class UserRecord(BaseModel):
    """Stored representation of a user, including the social graph sets."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(default_factory=uuid4)
    handle: str = Field(..., min_length=MIN_HANDLE_LENGTH, max_length=MAX_HANDLE_LENGTH)
    display_name: str
    credential_hash: str = ""
    email: str | None = None
    bio: str = ""
    avatar_url: str | None = None
    cover_url: str | None = None
    friends: set[UUID] = Field(default_factory=set)
    friend_requests: set[UUID] = Field(default_factory=set)
    role: Role = Role.USER
    status: Presence = Presence.ONLINE
    joined_at: datetime = Field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_public(self) -> "UserPublic":
        return UserPublic.model_validate(self.model_dump(exclude={"credential_hash"}))


class UserPublic(BaseModel):
    """User record without the credential hash."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    handle: str
    display_name: str
    email: str | None = None
    bio: str = ""
    avatar_url: str | None = None
    cover_url: str | None = None
    friends: set[UUID] = Field(default_factory=set)
    friend_requests: set[UUID] = Field(default_factory=set)
    role: Role = Role.USER
    status: Presence = Presence.ONLINE
    joined_at: datetime


class SignupRequest(BaseModel):
    handle: str = Field(..., min_length=MIN_HANDLE_LENGTH, max_length=MAX_HANDLE_LENGTH)
    display_name: str = Field(..., min_length=1, max_length=150)
    secret: str = Field(..., min_length=3, max_length=128)
    email: EmailStr | None = None
    bio: str | None = Field(default=None, max_length=500)


class ProfileUpdate(BaseModel):
    """Partial profile edit; unset fields keep their stored value."""

    handle: str | None = Field(default=None, min_length=MIN_HANDLE_LENGTH, max_length=MAX_HANDLE_LENGTH)
    display_name: str | None = Field(default=None, min_length=1, max_length=150)
    email: EmailStr | None = None
    bio: str | None = Field(default=None, max_length=500)
    avatar_url: str | None = Field(default=None, max_length=1024)
    cover_url: str | None = Field(default=None, max_length=1024)


class PresenceUpdate(BaseModel):
    status: Presence


__all__ = [
    "Role",
    "Presence",
    "UserRecord",
    "UserPublic",
    "SignupRequest",
    "ProfileUpdate",
    "PresenceUpdate",
    "utcnow",
]
