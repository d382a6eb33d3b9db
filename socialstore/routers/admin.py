"""Administrator-only removal routes."""
from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from ..backends import Backend
from ..dependencies import get_admin_session, get_store
from ..services import identity_service, post_service
from ..services.session_service import UserSession

router = APIRouter(prefix="/admin", tags=["admin"])


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    session: UserSession = Depends(get_admin_session),
    store: Backend = Depends(get_store),
) -> Response:
    await identity_service.delete_user(store, session, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: UUID,
    session: UserSession = Depends(get_admin_session),
    store: Backend = Depends(get_store),
) -> Response:
    await post_service.delete_post(store, session, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
