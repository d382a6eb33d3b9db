"""Convenience exports for service layer."""
from . import (
    auth_service,
    friendship_service,
    identity_service,
    message_service,
    notification_service,
    post_service,
    session_service,
)
from .auth_service import create_access_token, decode_access_token, hash_secret, verify_secret
from .friendship_service import (
    accept_friend_request,
    cancel_friend_request,
    decline_friend_request,
    friend_state,
    friend_status,
    list_friend_requests,
    list_friends,
    send_friend_request,
    unfriend,
)
from .identity_service import authenticate, create_user, seed_defaults, update_profile, update_user
from .message_service import conversation, last_message, list_inbox, mark_conversation_read, send_message, unread_count
from .notification_service import list_notifications
from .post_service import (
    add_comment,
    create_post,
    is_visible_to,
    like,
    list_feed,
    list_profile_posts,
    publish_post,
    resolve_share,
    share_post,
    toggle_like,
    unlike,
)
from .session_service import SessionRegistry, UserSession, login, logout, restore_session, signup
from .sync_service import Subscription, SyncEngine

__all__ = [
    "auth_service",
    "friendship_service",
    "identity_service",
    "message_service",
    "notification_service",
    "post_service",
    "session_service",
    "create_access_token",
    "decode_access_token",
    "hash_secret",
    "verify_secret",
    "accept_friend_request",
    "cancel_friend_request",
    "decline_friend_request",
    "friend_state",
    "friend_status",
    "list_friend_requests",
    "list_friends",
    "send_friend_request",
    "unfriend",
    "authenticate",
    "create_user",
    "seed_defaults",
    "update_profile",
    "update_user",
    "conversation",
    "last_message",
    "list_inbox",
    "mark_conversation_read",
    "send_message",
    "unread_count",
    "list_notifications",
    "add_comment",
    "create_post",
    "is_visible_to",
    "like",
    "list_feed",
    "list_profile_posts",
    "publish_post",
    "resolve_share",
    "share_post",
    "toggle_like",
    "unlike",
    "SessionRegistry",
    "UserSession",
    "login",
    "logout",
    "restore_session",
    "signup",
    "Subscription",
    "SyncEngine",
]
