"""Convenience exports for ORM models."""
from .associations import friend_requests, post_likes, user_friends
from .message import Message
from .post import Post, PostComment
from .session_state import SESSION_SLOT, SessionState
from .user import User

__all__ = [
    "friend_requests",
    "post_likes",
    "user_friends",
    "Message",
    "Post",
    "PostComment",
    "SESSION_SLOT",
    "SessionState",
    "User",
]
