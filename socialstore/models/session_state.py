"""Single-row table holding the persisted session snapshot."""
from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB

from socialstore.database import Base

SESSION_SLOT = 1


class SessionState(Base):
    __tablename__ = "session_state"

    slot = Column(Integer, primary_key=True, default=SESSION_SLOT)
    token = Column(Text, nullable=False)
    payload = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


__all__ = ["SessionState", "SESSION_SLOT"]
