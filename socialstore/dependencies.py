"""FastAPI dependencies resolving shared state and the caller's session."""
from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .backends import Backend
from .services.session_service import SessionRegistry, UserSession
from .services.sync_service import SyncEngine

_security = HTTPBearer(auto_error=False)


def get_store(request: Request) -> Backend:
    return request.app.state.store


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_sync_engine(request: Request) -> SyncEngine:
    return request.app.state.sync


async def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    registry: SessionRegistry = Depends(get_registry),
) -> UserSession:
    """Resolve the active session for the provided bearer token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return await registry.resolve(credentials.credentials)


async def get_admin_session(session: UserSession = Depends(get_current_session)) -> UserSession:
    session.require_admin()
    return session


__all__ = ["get_store", "get_registry", "get_sync_engine", "get_current_session", "get_admin_session"]
