"""Content repository: posts, comments, likes, shares and visibility."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from ..backends import Backend, SetMutation
from ..config import get_settings
from ..constants import POSTS
from ..errors import NotFound, ValidationFailed
from ..schemas import CommentRecord, PostCreate, PostRecord

if TYPE_CHECKING:
    from .session_service import UserSession

logger = logging.getLogger(__name__)


def is_visible_to(post: PostRecord, viewer_id: UUID | None) -> bool:
    """Public posts are visible to everyone; restricted ones to the listed viewers and the author."""

    if not post.visible_to:
        return True
    if viewer_id is None:
        return False
    return viewer_id == post.author_id or viewer_id in post.visible_to


async def create_post(store: Backend, post: PostRecord, *, capacity: int | None = None) -> PostRecord:
    """Insert ``post`` at the head of the feed and evict the oldest beyond ``capacity``."""

    capacity = capacity or get_settings().post_capacity
    stored = await store.insert_post(post)
    evicted = await store.evict_posts(capacity)
    if evicted:
        logger.info("Evicted %d oldest posts to stay within %d", len(evicted), capacity)
    return stored


async def publish_post(
    store: Backend, author_id: UUID, payload: PostCreate, *, capacity: int | None = None
) -> PostRecord:
    text = payload.text.strip()
    if not text and not payload.image_url:
        raise ValidationFailed("Post needs text or an image")
    if await store.get_user(author_id) is None:
        raise NotFound("User not found")
    post = PostRecord(
        author_id=author_id,
        text=text,
        image_url=payload.image_url,
        visible_to=set(payload.visible_to) if payload.visible_to else None,
    )
    return await create_post(store, post, capacity=capacity)


async def get_post(store: Backend, post_id: UUID) -> PostRecord:
    post = await store.get_post(post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


async def get_visible_post(store: Backend, post_id: UUID, viewer_id: UUID) -> PostRecord:
    post = await get_post(store, post_id)
    if not is_visible_to(post, viewer_id):
        raise NotFound("Post not found")
    return post


async def list_feed(store: Backend, viewer_id: UUID) -> list[PostRecord]:
    return [post for post in await store.list_posts() if is_visible_to(post, viewer_id)]


async def list_profile_posts(store: Backend, author_id: UUID, viewer_id: UUID) -> list[PostRecord]:
    return [
        post
        for post in await store.list_posts()
        if post.author_id == author_id and is_visible_to(post, viewer_id)
    ]


async def like(store: Backend, post_id: UUID, user_id: UUID) -> PostRecord:
    await store.apply([SetMutation.add(POSTS, post_id, "likes", user_id)])
    return await get_post(store, post_id)


async def unlike(store: Backend, post_id: UUID, user_id: UUID) -> PostRecord:
    await store.apply([SetMutation.remove(POSTS, post_id, "likes", user_id)])
    return await get_post(store, post_id)


async def toggle_like(store: Backend, post_id: UUID, user_id: UUID) -> PostRecord:
    post = await get_post(store, post_id)
    if user_id in post.likes:
        return await unlike(store, post_id, user_id)
    return await like(store, post_id, user_id)


async def add_comment(store: Backend, post_id: UUID, comment: CommentRecord) -> PostRecord:
    text = (comment.text or "").strip()
    if not text:
        raise ValidationFailed("Comment cannot be empty")
    return await store.append_comment(post_id, comment.model_copy(update={"text": text}))


async def share_post(
    store: Backend,
    post_id: UUID,
    sharer_id: UUID,
    caption: str = "",
    target_user_ids: set[UUID] | None = None,
    *,
    capacity: int | None = None,
) -> PostRecord:
    """Publish a new post pointing at the original of ``post_id``.

    Sharing a share references the original post, so share chains stay one
    level deep.
    """

    source = await get_post(store, post_id)
    if await store.get_user(sharer_id) is None:
        raise NotFound("User not found")
    original_id = source.shared_from_id or source.id
    share = PostRecord(
        author_id=sharer_id,
        text=(caption or "").strip(),
        image_url=source.image_url,
        shared_from_id=original_id,
        visible_to=set(target_user_ids) if target_user_ids else None,
    )
    return await create_post(store, share, capacity=capacity)


async def resolve_share(store: Backend, post: PostRecord) -> PostRecord | None:
    """Return the original behind a share, or ``None`` once it is gone."""

    if post.shared_from_id is None:
        return None
    return await store.get_post(post.shared_from_id)


async def delete_post(store: Backend, session: "UserSession", post_id: UUID) -> None:
    session.require_admin()
    if not await store.delete_post(post_id):
        raise NotFound("Post not found")
    logger.info("Administrator %s deleted post %s", session.user_id, post_id)


__all__ = [
    "is_visible_to",
    "create_post",
    "publish_post",
    "get_post",
    "get_visible_post",
    "list_feed",
    "list_profile_posts",
    "like",
    "unlike",
    "toggle_like",
    "add_comment",
    "share_post",
    "resolve_share",
    "delete_post",
]
