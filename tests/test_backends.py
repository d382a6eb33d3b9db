"""Backend contract tests: set mutations, change feed, quota and factory."""
from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from socialstore.backends import Backend, ChangeEvent, MemoryBackend, SetMutation, SqlBackend, create_backend
from socialstore.config import Settings
from socialstore.constants import MESSAGES, POSTS, USERS
from socialstore.database import build_engine
from socialstore.errors import CapacityExceeded, HandleTaken, NotFound, ValidationFailed
from socialstore.migrations import should_run_migrations
from socialstore.schemas import MessageRecord, PostRecord, SessionSnapshot, UserRecord


def _record(handle: str) -> UserRecord:
    return UserRecord(handle=handle, display_name=handle.title())


@pytest.mark.asyncio
async def test_set_mutations_are_unions_and_differences(store: Backend) -> None:
    alice = await store.insert_user(_record("alice1"))
    bob = await store.insert_user(_record("bob1"))

    add = SetMutation.add(USERS, alice.id, "friends", bob.id)
    await store.apply([add, add])
    assert (await store.get_user(alice.id)).friends == {bob.id}

    await store.apply([SetMutation.remove(USERS, alice.id, "friends", bob.id)])
    await store.apply([SetMutation.remove(USERS, alice.id, "friends", bob.id)])
    assert (await store.get_user(alice.id)).friends == set()


@pytest.mark.asyncio
async def test_batch_with_unknown_record_changes_nothing(store: Backend) -> None:
    alice = await store.insert_user(_record("alice1"))
    bob = await store.insert_user(_record("bob1"))

    with pytest.raises(NotFound):
        await store.apply(
            [
                SetMutation.add(USERS, alice.id, "friend_requests", bob.id),
                SetMutation.add(USERS, uuid4(), "friend_requests", bob.id),
            ]
        )
    assert (await store.get_user(alice.id)).friend_requests == set()


@pytest.mark.asyncio
async def test_scalar_fields_cannot_be_mutated_as_sets(store: Backend) -> None:
    alice = await store.insert_user(_record("alice1"))
    with pytest.raises(ValidationFailed):
        await store.apply([SetMutation.add(USERS, alice.id, "handle", uuid4())])
    with pytest.raises(ValidationFailed):
        await store.update_user_fields(alice.id, {"friends": set()})


@pytest.mark.asyncio
async def test_handle_uniqueness_enforced_by_backend(store: Backend) -> None:
    await store.insert_user(_record("alice1"))
    bob = await store.insert_user(_record("bob1"))
    with pytest.raises(HandleTaken):
        await store.insert_user(_record("alice1"))
    with pytest.raises(HandleTaken):
        await store.update_user_fields(bob.id, {"handle": "alice1"})


@pytest.mark.asyncio
async def test_session_slot_round_trip(store: Backend) -> None:
    alice = await store.insert_user(_record("alice1"))
    assert await store.load_session() is None
    await store.save_session(SessionSnapshot(token="token-1", user=alice))
    await store.save_session(SessionSnapshot(token="token-2", user=alice))

    snapshot = await store.load_session()
    assert snapshot is not None
    assert snapshot.token == "token-2"
    assert snapshot.user.id == alice.id

    await store.clear_session()
    assert await store.load_session() is None


@pytest.mark.asyncio
async def test_change_feed_reports_ordered_events() -> None:
    store = MemoryBackend()
    events: list[ChangeEvent] = []
    unwatch = store.watch([USERS, POSTS], events.append)

    alice = await store.insert_user(_record("alice1"))
    await store.insert_post(PostRecord(author_id=alice.id, text="hello"))
    await store.insert_message(MessageRecord(from_id=alice.id, to_id=uuid4(), text="unwatched"))
    unwatch()
    await store.insert_post(PostRecord(author_id=alice.id, text="after unwatch"))

    assert [(event.collection, event.kind) for event in events] == [(USERS, "insert"), (POSTS, "insert")]
    assert events[0].sequence < events[1].sequence
    assert MESSAGES not in {event.collection for event in events}


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_writes() -> None:
    store = MemoryBackend()

    def _broken(event: ChangeEvent) -> None:
        raise RuntimeError("listener bug")

    store.watch([USERS], _broken)
    alice = await store.insert_user(_record("alice1"))
    assert await store.get_user(alice.id) is not None


@pytest.mark.asyncio
async def test_memory_quota_rejects_writes() -> None:
    store = MemoryBackend(quota=2)
    alice = await store.insert_user(_record("alice1"))
    await store.insert_post(PostRecord(author_id=alice.id, text="one"))
    with pytest.raises(CapacityExceeded):
        await store.insert_post(PostRecord(author_id=alice.id, text="two"))


@pytest.mark.asyncio
async def test_simulated_latency_delays_calls() -> None:
    store = MemoryBackend(latency_ms=20)
    loop = asyncio.get_running_loop()
    started = loop.time()
    await store.list_users()
    assert loop.time() - started >= 0.015


@pytest.mark.asyncio
async def test_two_sql_clients_converge(tmp_path) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'shared.db'}"
    first_engine, second_engine = build_engine(url), build_engine(url)
    first, second = SqlBackend(first_engine), SqlBackend(second_engine)
    try:
        target = await first.insert_user(_record("target"))
        alice = await first.insert_user(_record("alice1"))
        bob = await second.insert_user(_record("bob1"))

        await asyncio.gather(
            first.apply([SetMutation.add(USERS, target.id, "friend_requests", alice.id)]),
            second.apply([SetMutation.add(USERS, target.id, "friend_requests", bob.id)]),
        )

        assert (await first.get_user(target.id)).friend_requests == {alice.id, bob.id}
        assert (await second.get_user(target.id)).friend_requests == {alice.id, bob.id}
    finally:
        await first.close()
        await second.close()


@pytest.mark.asyncio
async def test_sql_dangling_author_is_not_found(tmp_path) -> None:
    backend = SqlBackend(build_engine(f"sqlite+pysqlite:///{tmp_path / 'orphans.db'}"))
    try:
        with pytest.raises(NotFound):
            await backend.insert_post(PostRecord(author_id=uuid4(), text="orphan"))
        assert await backend.count_posts() == 0
    finally:
        await backend.close()


def test_create_backend_selects_implementation(tmp_path) -> None:
    memory = create_backend(Settings(storage_backend="memory"))
    assert isinstance(memory, MemoryBackend)
    assert memory.supports_change_feed

    sql = create_backend(
        Settings(storage_backend="sql", database_url=f"sqlite+pysqlite:///{tmp_path / 'factory.db'}")
    )
    assert isinstance(sql, SqlBackend)
    assert not sql.supports_change_feed
    asyncio.run(sql.close())


def test_migrations_only_run_outside_sqlite(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    monkeypatch.delenv("DISABLE_AUTO_MIGRATIONS", raising=False)
    monkeypatch.delenv("AUTO_MIGRATE", raising=False)

    assert not should_run_migrations("sqlite+pysqlite:///./socialstore.db")
    assert should_run_migrations("postgresql+psycopg://db/social")

    monkeypatch.setenv("DISABLE_AUTO_MIGRATIONS", "true")
    assert not should_run_migrations("postgresql+psycopg://db/social")

    monkeypatch.delenv("DISABLE_AUTO_MIGRATIONS")
    monkeypatch.setenv("AUTO_MIGRATE", "1")
    assert should_run_migrations("sqlite+pysqlite:///./socialstore.db")
