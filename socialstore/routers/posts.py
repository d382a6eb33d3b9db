"""Post, comment, like and share routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..backends import Backend
from ..dependencies import get_current_session, get_store
from ..schemas import CommentCreate, CommentRecord, PostCreate, PostFeedResponse, PostRecord, ShareRequest
from ..services import post_service
from ..services.session_service import UserSession

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/", response_model=PostFeedResponse)
async def feed(
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostFeedResponse:
    return PostFeedResponse(items=await post_service.list_feed(store, session.user_id))


@router.post("/", response_model=PostRecord, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostRecord:
    return await post_service.publish_post(store, session.user_id, payload)


@router.get("/{post_id}", response_model=PostRecord)
async def read_post(
    post_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostRecord:
    return await post_service.get_visible_post(store, post_id, session.user_id)


@router.get("/{post_id}/original", response_model=PostRecord | None)
async def read_original(
    post_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostRecord | None:
    post = await post_service.get_visible_post(store, post_id, session.user_id)
    original = await post_service.resolve_share(store, post)
    if original is None or not post_service.is_visible_to(original, session.user_id):
        return None
    return original


@router.post("/{post_id}/like", response_model=PostRecord)
async def like_post(
    post_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostRecord:
    await post_service.get_visible_post(store, post_id, session.user_id)
    return await post_service.like(store, post_id, session.user_id)


@router.post("/{post_id}/unlike", response_model=PostRecord)
async def unlike_post(
    post_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostRecord:
    await post_service.get_visible_post(store, post_id, session.user_id)
    return await post_service.unlike(store, post_id, session.user_id)


@router.post("/{post_id}/comments", response_model=PostRecord, status_code=status.HTTP_201_CREATED)
async def comment_on_post(
    post_id: UUID,
    payload: CommentCreate,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostRecord:
    await post_service.get_visible_post(store, post_id, session.user_id)
    comment = CommentRecord(author_id=session.user_id, text=payload.text)
    return await post_service.add_comment(store, post_id, comment)


@router.post("/{post_id}/share", response_model=PostRecord, status_code=status.HTTP_201_CREATED)
async def share_post(
    post_id: UUID,
    payload: ShareRequest,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostRecord:
    await post_service.get_visible_post(store, post_id, session.user_id)
    return await post_service.share_post(
        store, post_id, session.user_id, payload.caption, payload.target_user_ids
    )


__all__ = ["router"]
