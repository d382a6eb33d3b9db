"""SQLAlchemy ORM model for direct messages."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, Text, Uuid
from sqlalchemy.sql import expression, func

from socialstore.database import Base


class Message(Base):
    __tablename__ = "messages"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(Uuid(as_uuid=True), unique=True, nullable=False, default=uuid.uuid4)
    from_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    to_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    read = Column(Boolean, nullable=False, server_default=expression.false(), default=False)


__all__ = ["Message"]
