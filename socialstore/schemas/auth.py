"""Pydantic schemas for sessions and authentication endpoints."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .users import Role, UserRecord, utcnow


class SessionSnapshot(BaseModel):
    """Persisted form of an active session, including a copy of the user."""

    token: str
    user: UserRecord
    created_at: datetime = Field(default_factory=utcnow)


class LoginRequest(BaseModel):
    handle: str
    secret: str


class AuthResponse(BaseModel):
    access_token: str
    user_id: UUID
    token_type: str = "bearer"
    role: Role = Role.USER


__all__ = ["SessionSnapshot", "LoginRequest", "AuthResponse"]
