"""User directory and profile listing routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from ..backends import Backend
from ..dependencies import get_current_session, get_store
from ..schemas import PostFeedResponse, UserPublic
from ..services import identity_service, post_service
from ..services.session_service import UserSession

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/", response_model=list[UserPublic])
async def list_users(
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> list[UserPublic]:
    return [user.to_public() for user in await identity_service.list_users(store)]


@router.get("/{user_id}", response_model=UserPublic)
async def read_user(
    user_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> UserPublic:
    user = await identity_service.get_user(store, user_id)
    return user.to_public()


@router.get("/{user_id}/posts", response_model=PostFeedResponse)
async def profile_posts(
    user_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> PostFeedResponse:
    await identity_service.get_user(store, user_id)
    return PostFeedResponse(items=await post_service.list_profile_posts(store, user_id, session.user_id))


__all__ = ["router"]
