"""Storage backends sharing one contract."""
from __future__ import annotations

from ..config import Settings
from ..database import build_engine
from ..migrations import run_migrations_if_needed
from .base import Backend, ChangeEvent, ChangeListener, MutationOp, SetMutation, Unwatch
from .memory import MemoryBackend
from .sql import SqlBackend


def create_backend(settings: Settings) -> Backend:
    """Build the backend selected by ``STORAGE_BACKEND``."""

    if settings.storage_backend == "sql":
        run_migrations_if_needed(database_url=settings.database_url)
        return SqlBackend(build_engine(settings.database_url))
    return MemoryBackend(latency_ms=settings.simulated_latency_ms)


__all__ = [
    "Backend",
    "ChangeEvent",
    "ChangeListener",
    "MemoryBackend",
    "MutationOp",
    "SetMutation",
    "SqlBackend",
    "Unwatch",
    "create_backend",
]
