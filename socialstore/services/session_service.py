"""Explicit user sessions: created on login, invalidated on logout."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from uuid import UUID

from ..backends import Backend
from ..errors import InvalidCredential, NotFound, PermissionDenied, SessionExpired
from ..schemas import Presence, SessionSnapshot, SignupRequest, UserRecord, utcnow
from . import identity_service
from .auth_service import create_access_token, decode_access_token

logger = logging.getLogger(__name__)


class UserSession:
    """Binding of one client to one user.

    Holds a denormalized copy of the user record. A persistent session is
    mirrored into the store's ``session`` slot whenever that copy changes.
    """

    def __init__(
        self,
        store: Backend,
        *,
        token: str,
        user: UserRecord,
        created_at: datetime | None = None,
        persistent: bool = False,
    ) -> None:
        self._store = store
        self._token = token
        self._user = user.model_copy(deep=True)
        self._created_at = created_at or utcnow()
        self._persistent = persistent
        self._active = True

    def __repr__(self) -> str:
        state = "active" if self._active else "closed"
        return f"<UserSession @{self._user.handle} {state}>"

    @property
    def active(self) -> bool:
        return self._active

    @property
    def store(self) -> Backend:
        return self._store

    @property
    def persistent(self) -> bool:
        return self._persistent

    @property
    def token(self) -> str:
        self.require_active()
        return self._token

    @property
    def user(self) -> UserRecord:
        self.require_active()
        return self._user.model_copy(deep=True)

    @property
    def user_id(self) -> UUID:
        return self._user.id

    @property
    def is_admin(self) -> bool:
        return self._active and self._user.is_admin

    def require_active(self) -> None:
        if not self._active:
            raise SessionExpired()

    def require_admin(self) -> None:
        self.require_active()
        if not self._user.is_admin:
            raise PermissionDenied("Administrator role required")

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(token=self._token, user=self._user.model_copy(deep=True), created_at=self._created_at)

    async def adopt(self, user: UserRecord) -> None:
        """Replace the cached user copy and mirror it to the session slot."""

        self.require_active()
        if user.id != self._user.id:
            raise PermissionDenied("Session belongs to another user")
        self._user = user.model_copy(deep=True)
        if self._persistent:
            await self._store.save_session(self.snapshot())

    async def refresh(self) -> UserRecord:
        self.require_active()
        user = await self._store.get_user(self._user.id)
        if user is None:
            self.invalidate()
            raise NotFound("User not found")
        await self.adopt(user)
        return user

    def invalidate(self) -> None:
        self._active = False


async def _open(store: Backend, user: UserRecord, *, persist: bool) -> UserSession:
    if user.status != Presence.ONLINE:
        user = await store.update_user_fields(user.id, {"status": Presence.ONLINE})
    session = UserSession(store, token=create_access_token(user.id), user=user, persistent=persist)
    if persist:
        await store.save_session(session.snapshot())
    logger.info("Session opened for @%s", user.handle)
    return session


async def login(store: Backend, handle: str, secret: str, *, persist: bool = True) -> UserSession:
    user = await identity_service.authenticate(store, handle, secret)
    return await _open(store, user, persist=persist)


async def signup(store: Backend, payload: SignupRequest, *, persist: bool = True) -> UserSession:
    user_id = await identity_service.create_user(store, identity_service.build_user(payload), payload.secret)
    user = await identity_service.get_user(store, user_id)
    return await _open(store, user, persist=persist)


async def logout(session: UserSession) -> None:
    if not session.active:
        return
    store = session.store
    try:
        await store.update_user_fields(session.user_id, {"status": Presence.OFFLINE})
    except NotFound:
        logger.info("User %s vanished before logout", session.user_id)
    if session.persistent:
        await store.clear_session()
    session.invalidate()
    logger.info("Session closed for %s", session.user_id)


async def restore_session(store: Backend) -> UserSession | None:
    """Rebuild the persisted session, dropping it when stale."""

    snapshot = await store.load_session()
    if snapshot is None:
        return None
    try:
        user_id = decode_access_token(snapshot.token)
    except InvalidCredential:
        logger.info("Discarding persisted session with an invalid token")
        await store.clear_session()
        return None
    user = await store.get_user(user_id)
    if user is None or user_id != snapshot.user.id:
        await store.clear_session()
        return None
    session = UserSession(store, token=snapshot.token, user=user, created_at=snapshot.created_at, persistent=True)
    await session.adopt(user)
    return session


class SessionRegistry:
    """Active sessions of a multi-client server, keyed by bearer token."""

    def __init__(self) -> None:
        self._sessions: dict[str, UserSession] = {}
        self._lock = asyncio.Lock()

    async def add(self, session: UserSession) -> None:
        async with self._lock:
            self._sessions[session.token] = session

    async def resolve(self, token: str) -> UserSession:
        user_id = decode_access_token(token)
        async with self._lock:
            session = self._sessions.get(token)
        if session is None or not session.active:
            raise SessionExpired()
        if session.user_id != user_id:
            raise InvalidCredential("Invalid token")
        try:
            await session.refresh()
        except NotFound as exc:
            await self.discard(token)
            raise SessionExpired() from exc
        return session

    async def discard(self, token: str) -> UserSession | None:
        async with self._lock:
            return self._sessions.pop(token, None)

    async def close_all(self) -> None:
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.invalidate()


__all__ = [
    "UserSession",
    "SessionRegistry",
    "login",
    "signup",
    "logout",
    "restore_session",
]
