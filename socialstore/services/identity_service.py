"""Identity store operations: signup, credential check, profile edits."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

from ..backends import Backend, SetMutation
from ..constants import USERS
from ..errors import HandleTaken, InvalidCredential, NotFound, PermissionDenied
from ..schemas import Presence, PostRecord, ProfileUpdate, Role, SignupRequest, UserRecord
from .auth_service import hash_secret, verify_secret

if TYPE_CHECKING:
    from .session_service import UserSession

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("handle", "display_name", "email", "bio", "avatar_url", "cover_url", "status")

_SEED_ACCOUNTS = (
    {
        "handle": "admin",
        "display_name": "Neo Admin",
        "secret": "admin",
        "email": "admin@neobook.com",
        "bio": "System Administrator",
        "role": Role.ADMIN,
    },
    {
        "handle": "neo_user",
        "display_name": "John Doe",
        "secret": "123",
        "email": "john@example.com",
        "bio": "Loving the future!",
        "role": Role.USER,
    },
)


def normalize_handle(handle: str) -> str:
    return (handle or "").strip()


def default_media(handle: str) -> tuple[str, str]:
    """Return placeholder avatar and cover references for a new account."""

    return (
        f"https://picsum.photos/seed/{handle}/200",
        f"https://picsum.photos/seed/{handle}/800/300",
    )


async def is_handle_available(store: Backend, handle: str, *, excluding_id: UUID | None = None) -> bool:
    owner = await store.find_user_by_handle(normalize_handle(handle))
    return owner is None or owner.id == excluding_id


def build_user(payload: SignupRequest) -> UserRecord:
    handle = normalize_handle(payload.handle)
    avatar_url, cover_url = default_media(handle)
    return UserRecord(
        handle=handle,
        display_name=payload.display_name.strip(),
        email=str(payload.email) if payload.email else None,
        bio=(payload.bio or "Hello Neo World!").strip(),
        avatar_url=avatar_url,
        cover_url=cover_url,
    )


async def create_user(store: Backend, user: UserRecord, credential: str) -> UUID:
    """Persist ``user`` with a hashed ``credential``; fails with HandleTaken."""

    handle = normalize_handle(user.handle)
    if not await is_handle_available(store, handle):
        raise HandleTaken()
    record = user.model_copy(update={"handle": handle, "credential_hash": hash_secret(credential)})
    stored = await store.insert_user(record)
    logger.info("Created user %s (@%s)", stored.id, stored.handle)
    return stored.id


async def authenticate(store: Backend, handle: str, credential: str) -> UserRecord:
    user = await store.find_user_by_handle(normalize_handle(handle))
    if user is None:
        raise NotFound("User ID not found.")
    if not verify_secret(credential, user.credential_hash):
        raise InvalidCredential()
    return user


async def get_user(store: Backend, user_id: UUID) -> UserRecord:
    user = await store.get_user(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def list_users(store: Backend) -> list[UserRecord]:
    return await store.list_users()


async def update_user(store: Backend, user: UserRecord, *, session: "UserSession | None" = None) -> UserRecord:
    """Commit the profile fields of ``user``.

    The friend sets are never written here; they change only through
    field-level mutations. Renaming to one's own current handle succeeds.
    """

    existing = await get_user(store, user.id)
    handle = normalize_handle(user.handle)
    if handle != existing.handle and not await is_handle_available(store, handle, excluding_id=user.id):
        raise HandleTaken()

    fields: dict[str, Any] = {name: getattr(user, name) for name in PROFILE_FIELDS}
    fields["handle"] = handle
    updated = await store.update_user_fields(user.id, fields)

    if session is not None and session.active and session.user_id == updated.id:
        await session.adopt(updated)
    return updated


async def update_profile(store: Backend, session: "UserSession", changes: ProfileUpdate) -> UserRecord:
    session.require_active()
    current = await get_user(store, session.user_id)
    edits = changes.model_dump(exclude_unset=True)
    if "email" in edits and edits["email"] is not None:
        edits["email"] = str(edits["email"])
    return await update_user(store, current.model_copy(update=edits), session=session)


async def set_presence(store: Backend, session: "UserSession", status: Presence) -> UserRecord:
    session.require_active()
    updated = await store.update_user_fields(session.user_id, {"status": status})
    await session.adopt(updated)
    return updated


async def delete_user(store: Backend, session: "UserSession", user_id: UUID) -> None:
    """Administrative removal of a user, their posts and every graph edge to them."""

    session.require_admin()
    target = await get_user(store, user_id)
    if target.is_admin:
        raise PermissionDenied("Administrators cannot be deleted")

    mutations: list[SetMutation] = []
    for other in await store.list_users():
        if other.id == user_id:
            continue
        if user_id in other.friends:
            mutations.append(SetMutation.remove(USERS, other.id, "friends", user_id))
        if user_id in other.friend_requests:
            mutations.append(SetMutation.remove(USERS, other.id, "friend_requests", user_id))
    if mutations:
        await store.apply(mutations)

    for post in await store.list_posts():
        if post.author_id == user_id:
            await store.delete_post(post.id)

    await store.delete_user(user_id)
    logger.info("Administrator %s deleted user %s (@%s)", session.user_id, user_id, target.handle)


async def seed_defaults(store: Backend) -> bool:
    """Create the administrator, a demo account and a welcome post on an empty store."""

    if await store.list_users():
        return False

    admin_id: UUID | None = None
    for account in _SEED_ACCOUNTS:
        avatar_url, cover_url = default_media(account["handle"])
        user = UserRecord(
            handle=account["handle"],
            display_name=account["display_name"],
            email=account["email"],
            bio=account["bio"],
            role=account["role"],
            avatar_url=avatar_url,
            cover_url=cover_url,
        )
        user_id = await create_user(store, user, account["secret"])
        if account["role"] == Role.ADMIN:
            admin_id = user_id

    if admin_id is not None:
        await store.insert_post(
            PostRecord(
                author_id=admin_id,
                text="Welcome to NEOBOOK! This is the future of social connection.",
                image_url="https://picsum.photos/600/400",
            )
        )
    logger.info("Seeded default accounts")
    return True


__all__ = [
    "PROFILE_FIELDS",
    "normalize_handle",
    "default_media",
    "is_handle_available",
    "build_user",
    "create_user",
    "authenticate",
    "get_user",
    "list_users",
    "update_user",
    "update_profile",
    "set_presence",
    "delete_user",
    "seed_defaults",
]
