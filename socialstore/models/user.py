"""SQLAlchemy ORM model for application users."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.sql import func

from socialstore.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    handle = Column(String(32), unique=True, nullable=False, index=True)
    display_name = Column(String(150), nullable=False)
    credential_hash = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=True)
    bio = Column(Text, nullable=False, default="")
    avatar_url = Column(String(1024), nullable=True)
    cover_url = Column(String(1024), nullable=True)
    role = Column(String(32), nullable=False, server_default="user", default="user")
    status = Column(String(16), nullable=False, server_default="online", default="online")
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


__all__ = ["User"]
