"""Credential collaborator: secret hashing and signed identity tokens."""
from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Final, Optional
from uuid import UUID, uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import get_settings
from ..errors import InvalidCredential

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_PLACEHOLDER_VALUES: Final[set[str]] = {
    "changeme",
    "change-me",
    "placeholder",
    "example",
    "sample",
    "your-key-here",
}


class MissingSecretError(RuntimeError):
    """Raised when a required secret environment variable is not set."""


def require_secret(name: str) -> str:
    """Return a trimmed secret value or raise :class:`MissingSecretError`."""

    value = (os.getenv(name) or "").strip()
    if not value or value.lower() in _PLACEHOLDER_VALUES:
        raise MissingSecretError(f"Environment variable {name} is required and must not use placeholder defaults")
    return value


@lru_cache(maxsize=1)
def _get_jwt_secret() -> str:
    try:
        return require_secret("JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise RuntimeError(str(exc)) from exc


def hash_secret(secret: str) -> str:
    """Hash a plain-text secret using salted bcrypt."""

    return _pwd_context.hash(secret)


def verify_secret(secret: str, hashed: str) -> bool:
    """Verify that ``secret`` matches ``hashed``; an empty hash never matches."""

    if not secret or not hashed:
        return False
    try:
        return _pwd_context.verify(secret, hashed)
    except (ValueError, TypeError):
        logger.warning("Stored credential hash is not a recognised bcrypt hash")
        return False


def create_access_token(subject: UUID, *, expires_minutes: Optional[int] = None) -> str:
    """Create a signed JWT holding the provided ``subject``."""

    settings = get_settings()
    expire_delta = timedelta(minutes=expires_minutes or settings.jwt_expires_minutes)
    now = datetime.now(timezone.utc)
    payload = {"sub": str(subject), "exp": now + expire_delta, "iat": now, "jti": uuid4().hex}
    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """Decode and validate a JWT, returning the embedded subject UUID."""

    try:
        payload = jwt.decode(token, _get_jwt_secret(), algorithms=[get_settings().jwt_algorithm])
    except JWTError as exc:
        raise InvalidCredential("Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise InvalidCredential("Invalid token payload")
    try:
        return UUID(subject)
    except ValueError as exc:
        raise InvalidCredential("Invalid token payload") from exc


__all__ = [
    "MissingSecretError",
    "require_secret",
    "hash_secret",
    "verify_secret",
    "create_access_token",
    "decode_access_token",
]
