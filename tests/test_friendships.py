"""Friend request state machine tests."""
from __future__ import annotations

import asyncio
from uuid import UUID

import pytest

from socialstore.backends import Backend
from socialstore.constants import FRIENDSHIP_MESSAGE
from socialstore.errors import AlreadyFriends, AlreadyRequested, Conflict, NotFound, SelfReference
from socialstore.schemas import UserRecord
from socialstore.services import friendship_service, identity_service, message_service


async def _user(store: Backend, handle: str, display_name: str | None = None) -> UUID:
    record = UserRecord(handle=handle, display_name=display_name or handle.title())
    return await identity_service.create_user(store, record, "secret")


async def _assert_symmetric(store: Backend) -> None:
    users = {user.id: user for user in await store.list_users()}
    for user in users.values():
        for friend_id in user.friends:
            assert user.id in users[friend_id].friends
        assert not (user.friends & user.friend_requests)


@pytest.mark.asyncio
async def test_request_then_accept_scenario(store: Backend) -> None:
    alice_id = await _user(store, "alice1", "Alice")
    bob_id = await _user(store, "bob1", "Bob")

    await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="bob1")
    assert (await store.get_user(bob_id)).friend_requests == {alice_id}

    announcement = await friendship_service.accept_friend_request(store, user_id=bob_id, requester_id=alice_id)

    alice = await store.get_user(alice_id)
    bob = await store.get_user(bob_id)
    assert bob_id in alice.friends
    assert alice_id in bob.friends
    assert bob.friend_requests == set()

    assert announcement.from_id == alice_id
    assert announcement.to_id == bob_id
    assert announcement.text == FRIENDSHIP_MESSAGE.format(name="Alice")
    thread = await message_service.conversation(store, bob_id, alice_id)
    assert [message.id for message in thread] == [announcement.id]
    await _assert_symmetric(store)


@pytest.mark.asyncio
async def test_self_request_is_rejected(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    with pytest.raises(SelfReference) as excinfo:
        await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="alice1")
    assert excinfo.value.message == "Cannot add yourself"
    assert (await store.get_user(alice_id)).friend_requests == set()


@pytest.mark.asyncio
async def test_unknown_handle_is_not_found(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    with pytest.raises(NotFound):
        await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="ghost")


@pytest.mark.asyncio
async def test_duplicate_and_crossed_requests_conflict(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="bob1")

    with pytest.raises(AlreadyRequested):
        await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="bob1")
    with pytest.raises(AlreadyRequested):
        await friendship_service.send_friend_request(store, from_id=bob_id, to_handle="alice1")

    await friendship_service.accept_friend_request(store, user_id=bob_id, requester_id=alice_id)
    with pytest.raises(AlreadyFriends):
        await friendship_service.send_friend_request(store, from_id=bob_id, to_handle="alice1")
    assert issubclass(AlreadyFriends, Conflict)


@pytest.mark.asyncio
async def test_accept_without_request_is_not_found(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    with pytest.raises(NotFound):
        await friendship_service.accept_friend_request(store, user_id=bob_id, requester_id=alice_id)
    assert (await store.get_user(bob_id)).friends == set()
    assert await store.count_messages() == 0


@pytest.mark.asyncio
async def test_decline_cancel_and_unfriend(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    carol_id = await _user(store, "carol1")

    await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="bob1")
    await friendship_service.decline_friend_request(store, user_id=bob_id, requester_id=alice_id)
    assert (await store.get_user(bob_id)).friend_requests == set()

    await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="carol1")
    await friendship_service.cancel_friend_request(store, from_id=alice_id, to_id=carol_id)
    assert (await store.get_user(carol_id)).friend_requests == set()
    with pytest.raises(NotFound):
        await friendship_service.cancel_friend_request(store, from_id=alice_id, to_id=carol_id)

    await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="bob1")
    await friendship_service.accept_friend_request(store, user_id=bob_id, requester_id=alice_id)
    await friendship_service.unfriend(store, user_id=bob_id, friend_id=alice_id)
    assert (await store.get_user(alice_id)).friends == set()
    assert (await store.get_user(bob_id)).friends == set()
    await _assert_symmetric(store)


@pytest.mark.asyncio
async def test_friend_status_and_listings(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    carol_id = await _user(store, "carol1")
    await friendship_service.send_friend_request(store, from_id=alice_id, to_handle="bob1")
    await friendship_service.send_friend_request(store, from_id=carol_id, to_handle="alice1")

    assert await friendship_service.friend_status(store, viewer_id=alice_id, other_id=alice_id) == "self"
    assert await friendship_service.friend_status(store, viewer_id=alice_id, other_id=bob_id) == "outgoing"
    assert await friendship_service.friend_status(store, viewer_id=bob_id, other_id=alice_id) == "incoming"
    assert await friendship_service.friend_status(store, viewer_id=bob_id, other_id=carol_id) == "none"

    await friendship_service.accept_friend_request(store, user_id=alice_id, requester_id=carol_id)
    assert await friendship_service.friend_status(store, viewer_id=alice_id, other_id=carol_id) == "friend"

    state = await friendship_service.friend_state(store, alice_id)
    assert [friend.id for friend in state.friends] == [carol_id]
    assert state.incoming_requests == []
    assert [item.id for item in state.outgoing_requests] == [bob_id]


@pytest.mark.asyncio
async def test_concurrent_requests_to_one_user_all_land(store: Backend) -> None:
    target_id = await _user(store, "target")
    senders = [await _user(store, f"sender{index}") for index in range(4)]

    await asyncio.gather(
        *(friendship_service.send_friend_request(store, from_id=sender, to_handle="target") for sender in senders)
    )

    assert (await store.get_user(target_id)).friend_requests == set(senders)
