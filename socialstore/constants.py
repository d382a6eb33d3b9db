"""Project-wide constant values."""
from __future__ import annotations

USERS = "users"
POSTS = "posts"
MESSAGES = "messages"
SESSION = "session"

COLLECTIONS = (USERS, POSTS, MESSAGES, SESSION)

# Set-valued fields that only change through add/remove mutations.
SET_FIELDS: dict[str, frozenset[str]] = {
    USERS: frozenset({"friends", "friend_requests"}),
    POSTS: frozenset({"likes"}),
}

# Scalar user fields writable through update_user_fields.
USER_SCALAR_FIELDS = frozenset(
    {"handle", "display_name", "credential_hash", "email", "bio", "avatar_url", "cover_url", "role", "status"}
)

DEFAULT_POST_CAPACITY = 50
DEFAULT_MESSAGE_HIGH_WATER = 500
DEFAULT_MESSAGE_EVICTION_BATCH = 100

MIN_HANDLE_LENGTH = 3
MAX_HANDLE_LENGTH = 32

FRIENDSHIP_MESSAGE = "You are now friends with {name}. Start chatting now!"  # seeded on accept

__all__ = [
    "USERS",
    "POSTS",
    "MESSAGES",
    "SESSION",
    "COLLECTIONS",
    "SET_FIELDS",
    "USER_SCALAR_FIELDS",
    "DEFAULT_POST_CAPACITY",
    "DEFAULT_MESSAGE_HIGH_WATER",
    "DEFAULT_MESSAGE_EVICTION_BATCH",
    "MIN_HANDLE_LENGTH",
    "MAX_HANDLE_LENGTH",
    "FRIENDSHIP_MESSAGE",
]
