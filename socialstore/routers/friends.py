"""Friend management API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from ..backends import Backend
from ..dependencies import get_current_session, get_store
from ..schemas import FriendRequestPayload, FriendState, FriendStatusResponse, MessageRecord, UserPublic
from ..services import friendship_service
from ..services.session_service import UserSession

router = APIRouter(prefix="/friends", tags=["friends"])


@router.get("/", response_model=FriendState)
async def friends_overview(
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> FriendState:
    return await friendship_service.friend_state(store, session.user_id)


@router.post("/requests", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def send_request(
    payload: FriendRequestPayload,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> UserPublic:
    target = await friendship_service.send_friend_request(store, from_id=session.user_id, to_handle=payload.handle)
    return target.to_public()


@router.post("/requests/{requester_id}/accept", response_model=MessageRecord)
async def accept_request(
    requester_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> MessageRecord:
    return await friendship_service.accept_friend_request(
        store, user_id=session.user_id, requester_id=requester_id, session=session
    )


@router.post("/requests/{requester_id}/decline", status_code=status.HTTP_204_NO_CONTENT)
async def decline_request(
    requester_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> Response:
    await friendship_service.decline_friend_request(store, user_id=session.user_id, requester_id=requester_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/requests/{recipient_id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_request(
    recipient_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> Response:
    await friendship_service.cancel_friend_request(store, from_id=session.user_id, to_id=recipient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{other_id}/status", response_model=FriendStatusResponse)
async def friend_status(
    other_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> FriendStatusResponse:
    value = await friendship_service.friend_status(store, viewer_id=session.user_id, other_id=other_id)
    return FriendStatusResponse(user_id=other_id, status=value)


@router.delete("/{friend_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unfriend(
    friend_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> Response:
    await friendship_service.unfriend(store, user_id=session.user_id, friend_id=friend_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
