"""Business logic for friend requests and friendships.

Every change to ``friends`` or ``friend_requests`` is expressed as a batch of
field-level set mutations, never as a rewrite of the user record, so two
clients sending requests to the same person both land.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from ..backends import Backend, SetMutation
from ..constants import FRIENDSHIP_MESSAGE, USERS
from ..errors import AlreadyFriends, AlreadyRequested, NotFound, SelfReference
from ..schemas import FriendState, FriendStatus, MessageRecord, UserRecord, utcnow
from .identity_service import get_user, normalize_handle
from .message_service import send_message

if TYPE_CHECKING:
    from .session_service import UserSession

logger = logging.getLogger(__name__)


async def send_friend_request(store: Backend, *, from_id: UUID, to_handle: str) -> UserRecord:
    """Add ``from_id`` to the pending requests of the user called ``to_handle``."""

    candidate = normalize_handle(to_handle)
    target = await store.find_user_by_handle(candidate) if candidate else None
    if target is None:
        raise NotFound("User ID not found.")
    if target.id == from_id:
        raise SelfReference()
    sender = await store.get_user(from_id)
    if sender is None:
        raise NotFound("Sender not found")
    if from_id in target.friends or target.id in sender.friends:
        raise AlreadyFriends()
    if from_id in target.friend_requests:
        raise AlreadyRequested()
    if target.id in sender.friend_requests:
        raise AlreadyRequested("They already sent you a request. Accept it instead.")

    await store.apply([SetMutation.add(USERS, target.id, "friend_requests", from_id)])
    logger.info("Friend request %s -> %s", from_id, target.id)
    return await get_user(store, target.id)


async def accept_friend_request(
    store: Backend,
    *,
    user_id: UUID,
    requester_id: UUID,
    session: "UserSession | None" = None,
) -> MessageRecord:
    """Make ``user_id`` and ``requester_id`` friends and seed their conversation.

    Returns the system message sent from the requester to the accepter.
    """

    user = await get_user(store, user_id)
    requester = await get_user(store, requester_id)
    if requester_id not in user.friend_requests:
        raise NotFound("Friend request not found")

    await store.apply(
        [
            SetMutation.add(USERS, user_id, "friends", requester_id),
            SetMutation.add(USERS, requester_id, "friends", user_id),
            SetMutation.remove(USERS, user_id, "friend_requests", requester_id),
            # a crossed request in the other direction is settled too
            SetMutation.remove(USERS, requester_id, "friend_requests", user_id),
        ]
    )

    announcement = MessageRecord(
        from_id=requester_id,
        to_id=user_id,
        text=FRIENDSHIP_MESSAGE.format(name=requester.display_name),
        timestamp=utcnow(),
    )
    stored = await send_message(store, announcement)

    if session is not None and session.active and session.user_id in (user_id, requester_id):
        await session.refresh()
    logger.info("Friendship formed between %s and %s", user_id, requester_id)
    return stored


async def decline_friend_request(store: Backend, *, user_id: UUID, requester_id: UUID) -> None:
    user = await get_user(store, user_id)
    if requester_id not in user.friend_requests:
        raise NotFound("Friend request not found")
    await store.apply([SetMutation.remove(USERS, user_id, "friend_requests", requester_id)])


async def cancel_friend_request(store: Backend, *, from_id: UUID, to_id: UUID) -> None:
    target = await get_user(store, to_id)
    if from_id not in target.friend_requests:
        raise NotFound("Friend request not found")
    await store.apply([SetMutation.remove(USERS, to_id, "friend_requests", from_id)])


async def unfriend(store: Backend, *, user_id: UUID, friend_id: UUID) -> None:
    user = await get_user(store, user_id)
    if friend_id not in user.friends:
        raise NotFound("Friendship not found")
    await store.apply(
        [
            SetMutation.remove(USERS, user_id, "friends", friend_id),
            SetMutation.remove(USERS, friend_id, "friends", user_id),
        ]
    )
    logger.info("Friendship removed between %s and %s", user_id, friend_id)


async def friend_status(store: Backend, *, viewer_id: UUID, other_id: UUID) -> FriendStatus:
    if viewer_id == other_id:
        return "self"
    viewer = await get_user(store, viewer_id)
    other = await get_user(store, other_id)
    if other_id in viewer.friends:
        return "friend"
    if other_id in viewer.friend_requests:
        return "incoming"
    if viewer_id in other.friend_requests:
        return "outgoing"
    return "none"


async def list_friends(store: Backend, user_id: UUID) -> list[UserRecord]:
    user = await get_user(store, user_id)
    friends: list[UserRecord] = []
    for friend_id in user.friends:
        friend = await store.get_user(friend_id)
        if friend is not None:
            friends.append(friend)
    friends.sort(key=lambda item: item.handle)
    return friends


async def list_friend_requests(store: Backend, user_id: UUID) -> tuple[list[UserRecord], list[UserRecord]]:
    """Return ``(incoming, outgoing)`` pending requests for ``user_id``."""

    user = await get_user(store, user_id)
    incoming: list[UserRecord] = []
    outgoing: list[UserRecord] = []
    for other in await store.list_users():
        if other.id in user.friend_requests:
            incoming.append(other)
        if user_id in other.friend_requests:
            outgoing.append(other)
    return incoming, outgoing


async def friend_state(store: Backend, user_id: UUID) -> FriendState:
    friends = await list_friends(store, user_id)
    incoming, outgoing = await list_friend_requests(store, user_id)
    return FriendState(
        user_id=user_id,
        friends=[friend.to_public() for friend in friends],
        incoming_requests=[item.to_public() for item in incoming],
        outgoing_requests=[item.to_public() for item in outgoing],
    )


__all__ = [
    "send_friend_request",
    "accept_friend_request",
    "decline_friend_request",
    "cancel_friend_request",
    "unfriend",
    "friend_status",
    "list_friends",
    "list_friend_requests",
    "friend_state",
]
