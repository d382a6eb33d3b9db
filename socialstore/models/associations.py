"""Association tables backing the set-valued record fields."""
from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Table, Uuid

from socialstore.database import Base

# users.friends: one row per direction, so symmetry is two rows.
user_friends = Table(
    "user_friends",
    Base.metadata,
    Column("user_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("friend_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

# users.friend_requests: inbound pending requests, keyed by recipient.
friend_requests = Table(
    "friend_requests",
    Base.metadata,
    Column("recipient_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("requester_id", Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

post_likes = Table(
    "post_likes",
    Base.metadata,
    Column("post_id", Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Uuid(as_uuid=True), primary_key=True),
)


__all__ = ["user_friends", "friend_requests", "post_likes"]
