"""Aggregate router exports."""
from .admin import router as admin_router
from .auth import router as auth_router
from .friends import router as friends_router
from .messages import router as messages_router
from .notifications import router as notifications_router
from .posts import router as posts_router
from .realtime import router as realtime_router
from .users import router as users_router

__all__ = [
    "admin_router",
    "auth_router",
    "friends_router",
    "messages_router",
    "notifications_router",
    "posts_router",
    "realtime_router",
    "users_router",
]
