"""Shared fixtures: every store test runs against both backends."""
from __future__ import annotations

import os
from typing import Iterator

import pytest

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("SEED_DEFAULTS", "true")

from socialstore.backends import Backend, MemoryBackend, SqlBackend  # noqa: E402
from socialstore.database import build_engine  # noqa: E402


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest, tmp_path) -> Iterator[Backend]:
    if request.param == "memory":
        yield MemoryBackend()
        return
    engine = build_engine(f"sqlite+pysqlite:///{tmp_path / 'store.db'}")
    yield SqlBackend(engine)
    engine.dispose()


@pytest.fixture
def memory_store() -> MemoryBackend:
    return MemoryBackend()
