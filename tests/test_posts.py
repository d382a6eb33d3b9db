"""Content repository tests: visibility, likes, comments, shares, eviction."""
from __future__ import annotations

from uuid import UUID, uuid4

import pytest

from socialstore.backends import Backend
from socialstore.errors import NotFound, PermissionDenied, ValidationFailed
from socialstore.schemas import CommentRecord, PostCreate, PostRecord, UserRecord
from socialstore.services import identity_service, post_service, session_service


async def _user(store: Backend, handle: str) -> UUID:
    return await identity_service.create_user(store, UserRecord(handle=handle, display_name=handle.title()), "secret")


def test_visibility_predicate() -> None:
    author, friend, stranger = uuid4(), uuid4(), uuid4()
    public = PostRecord(author_id=author, text="hello")
    empty = PostRecord(author_id=author, text="hello", visible_to=set())
    restricted = PostRecord(author_id=author, text="psst", visible_to={friend})

    assert post_service.is_visible_to(public, stranger)
    assert post_service.is_visible_to(empty, stranger)
    assert post_service.is_visible_to(restricted, friend)
    assert post_service.is_visible_to(restricted, author)
    assert not post_service.is_visible_to(restricted, stranger)


@pytest.mark.asyncio
async def test_feed_and_profile_apply_visibility(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    carol_id = await _user(store, "carol1")
    public = await post_service.publish_post(store, alice_id, PostCreate(text="hi all"))
    private = await post_service.publish_post(store, alice_id, PostCreate(text="hi bob", visible_to={bob_id}))

    bob_feed = [post.id for post in await post_service.list_feed(store, bob_id)]
    carol_feed = [post.id for post in await post_service.list_feed(store, carol_id)]
    assert bob_feed == [private.id, public.id]
    assert carol_feed == [public.id]

    profile = await post_service.list_profile_posts(store, alice_id, carol_id)
    assert [post.id for post in profile] == [public.id]
    with pytest.raises(NotFound):
        await post_service.get_visible_post(store, private.id, carol_id)


@pytest.mark.asyncio
async def test_empty_post_rejected(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    with pytest.raises(ValidationFailed):
        await post_service.publish_post(store, alice_id, PostCreate(text="   "))
    image_only = await post_service.publish_post(store, alice_id, PostCreate(image_url="https://picsum.photos/600/400"))
    assert image_only.text == ""


@pytest.mark.asyncio
async def test_like_is_idempotent_and_unlike_restores(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    post = await post_service.publish_post(store, alice_id, PostCreate(text="like me"))

    await post_service.like(store, post.id, bob_id)
    twice = await post_service.like(store, post.id, bob_id)
    assert twice.likes == {bob_id}

    restored = await post_service.unlike(store, post.id, bob_id)
    assert restored.likes == set()

    toggled = await post_service.toggle_like(store, post.id, alice_id)
    assert toggled.likes == {alice_id}
    toggled = await post_service.toggle_like(store, post.id, alice_id)
    assert toggled.likes == set()

    with pytest.raises(NotFound):
        await post_service.like(store, uuid4(), bob_id)


@pytest.mark.asyncio
async def test_comments_append_in_order(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    post = await post_service.publish_post(store, alice_id, PostCreate(text="thread"))

    for index in range(3):
        await post_service.add_comment(store, post.id, CommentRecord(author_id=bob_id, text=f"reply {index}"))

    stored = await post_service.get_post(store, post.id)
    assert [comment.text for comment in stored.comments] == ["reply 0", "reply 1", "reply 2"]

    with pytest.raises(ValidationFailed):
        await post_service.add_comment(store, post.id, CommentRecord(author_id=bob_id, text=" "))
    with pytest.raises(NotFound):
        await post_service.add_comment(store, uuid4(), CommentRecord(author_id=bob_id, text="lost"))


@pytest.mark.asyncio
async def test_share_of_share_points_to_original(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    bob_id = await _user(store, "bob1")
    carol_id = await _user(store, "carol1")
    original = await post_service.publish_post(store, alice_id, PostCreate(text="original"))

    first = await post_service.share_post(store, original.id, bob_id, "look")
    second = await post_service.share_post(store, first.id, carol_id, "look again", {alice_id})

    assert first.shared_from_id == original.id
    assert second.shared_from_id == original.id
    assert second.visible_to == {alice_id}
    assert (await post_service.resolve_share(store, second)).id == original.id

    await store.delete_post(original.id)
    assert await post_service.resolve_share(store, second) is None


@pytest.mark.asyncio
async def test_share_by_unknown_user_is_rejected(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    original = await post_service.publish_post(store, alice_id, PostCreate(text="original"))

    with pytest.raises(NotFound):
        await post_service.share_post(store, original.id, uuid4(), "ghost")
    assert [post.id for post in await store.list_posts()] == [original.id]


@pytest.mark.asyncio
async def test_creating_past_capacity_evicts_oldest(store: Backend) -> None:
    alice_id = await _user(store, "alice1")
    created = [
        await post_service.publish_post(store, alice_id, PostCreate(text=f"post {index}"), capacity=50)
        for index in range(51)
    ]

    assert await store.count_posts() == 50
    assert await store.get_post(created[0].id) is None
    assert await store.get_post(created[-1].id) is not None
    remaining = {post.id for post in await store.list_posts()}
    assert remaining == {post.id for post in created[1:]}


@pytest.mark.asyncio
async def test_admin_delete_post(store: Backend) -> None:
    await identity_service.seed_defaults(store)
    admin = await session_service.login(store, "admin", "admin", persist=False)
    demo = await session_service.login(store, "neo_user", "123", persist=False)
    post = await post_service.publish_post(store, demo.user_id, PostCreate(text="remove me"))

    with pytest.raises(PermissionDenied):
        await post_service.delete_post(store, demo, post.id)
    await post_service.delete_post(store, admin, post.id)
    assert await store.get_post(post.id) is None
    with pytest.raises(NotFound):
        await post_service.delete_post(store, admin, post.id)
