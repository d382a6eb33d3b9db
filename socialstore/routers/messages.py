"""Messaging API routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..backends import Backend
from ..dependencies import get_current_session, get_store
from ..schemas import ConversationResponse, InboxEntry, MessageRecord, MessageSendRequest
from ..services import message_service
from ..services.session_service import UserSession

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/", response_model=list[InboxEntry])
async def inbox(
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> list[InboxEntry]:
    return await message_service.list_inbox(store, session.user_id)


@router.get("/{friend_id}", response_model=ConversationResponse)
async def read_conversation(
    friend_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> ConversationResponse:
    messages = await message_service.conversation(store, session.user_id, friend_id)
    return ConversationResponse(friend_id=friend_id, messages=messages)


@router.post("/{friend_id}", response_model=MessageRecord, status_code=status.HTTP_201_CREATED)
async def send(
    friend_id: UUID,
    payload: MessageSendRequest,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> MessageRecord:
    message = MessageRecord(from_id=session.user_id, to_id=friend_id, text=payload.text)
    return await message_service.send_message(store, message)


@router.post("/{friend_id}/read")
async def mark_read(
    friend_id: UUID,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> dict[str, int]:
    updated = await message_service.mark_conversation_read(store, reader_id=session.user_id, friend_id=friend_id)
    return {"updated": updated}


__all__ = ["router"]
