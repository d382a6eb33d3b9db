"""Convenience exports for schema layer."""
from .auth import AuthResponse, LoginRequest, SessionSnapshot
from .friends import FriendRequestPayload, FriendState, FriendStatus, FriendStatusResponse
from .messages import ConversationResponse, InboxEntry, MessageRecord, MessageSendRequest
from .notifications import (
    CommentNotification,
    FriendRequestNotification,
    LikeNotification,
    MessageNotification,
    Notification,
    NotificationListResponse,
)
from .posts import CommentCreate, CommentRecord, PostCreate, PostFeedResponse, PostRecord, ShareRequest
from .users import Presence, PresenceUpdate, ProfileUpdate, Role, SignupRequest, UserPublic, UserRecord, utcnow

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "SessionSnapshot",
    "FriendRequestPayload",
    "FriendState",
    "FriendStatus",
    "FriendStatusResponse",
    "ConversationResponse",
    "InboxEntry",
    "MessageRecord",
    "MessageSendRequest",
    "CommentNotification",
    "FriendRequestNotification",
    "LikeNotification",
    "MessageNotification",
    "Notification",
    "NotificationListResponse",
    "CommentCreate",
    "CommentRecord",
    "PostCreate",
    "PostFeedResponse",
    "PostRecord",
    "ShareRequest",
    "Presence",
    "PresenceUpdate",
    "ProfileUpdate",
    "Role",
    "SignupRequest",
    "UserPublic",
    "UserRecord",
    "utcnow",
]
