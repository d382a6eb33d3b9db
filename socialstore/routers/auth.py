"""Authentication and profile routes."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from ..backends import Backend
from ..constants import MIN_HANDLE_LENGTH
from ..dependencies import get_current_session, get_registry, get_store
from ..schemas import AuthResponse, LoginRequest, PresenceUpdate, ProfileUpdate, SignupRequest, UserPublic
from ..services import identity_service, session_service
from ..services.session_service import SessionRegistry, UserSession

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(session: UserSession) -> AuthResponse:
    user = session.user
    return AuthResponse(access_token=session.token, user_id=user.id, role=user.role)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    store: Backend = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
) -> AuthResponse:
    session = await session_service.signup(store, payload, persist=False)
    await registry.add(session)
    return _auth_response(session)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    store: Backend = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
) -> AuthResponse:
    session = await session_service.login(store, payload.handle, payload.secret, persist=False)
    await registry.add(session)
    return _auth_response(session)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session: UserSession = Depends(get_current_session),
    registry: SessionRegistry = Depends(get_registry),
) -> Response:
    await registry.discard(session.token)
    await session_service.logout(session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserPublic)
async def read_me(session: UserSession = Depends(get_current_session)) -> UserPublic:
    return session.user.to_public()


@router.patch("/me", response_model=UserPublic)
async def update_me(
    payload: ProfileUpdate,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> UserPublic:
    updated = await identity_service.update_profile(store, session, payload)
    return updated.to_public()


@router.put("/me/status", response_model=UserPublic)
async def update_status(
    payload: PresenceUpdate,
    session: UserSession = Depends(get_current_session),
    store: Backend = Depends(get_store),
) -> UserPublic:
    updated = await identity_service.set_presence(store, session, payload.status)
    return updated.to_public()


@router.get("/handles/{handle}")
async def handle_availability(handle: str, store: Backend = Depends(get_store)) -> dict[str, Any]:
    candidate = identity_service.normalize_handle(handle)
    available = len(candidate) >= MIN_HANDLE_LENGTH and await identity_service.is_handle_available(store, candidate)
    return {"handle": candidate, "available": available}


__all__ = ["router"]
