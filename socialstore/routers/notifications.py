"""Notification routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..backends import Backend
from ..dependencies import get_current_session, get_store
from ..schemas import NotificationListResponse
from ..services import notification_service
from ..services.session_service import UserSession

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=NotificationListResponse)
async def list_notifications(
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> NotificationListResponse:
    return NotificationListResponse(items=await notification_service.list_notifications(store, session.user_id))


__all__ = ["router"]
