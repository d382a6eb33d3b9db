"""SQLAlchemy backend; safe for many concurrent writers, no change feed."""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import Table, and_, delete, func, insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ..constants import POSTS, USER_SCALAR_FIELDS, USERS
from ..database import build_session_factory, init_db
from ..errors import BackendUnavailable, CapacityExceeded, HandleTaken, NotFound, StoreError, ValidationFailed
from ..models import (
    SESSION_SLOT,
    Message,
    Post,
    PostComment,
    SessionState,
    User,
    friend_requests,
    post_likes,
    user_friends,
)
from ..schemas import CommentRecord, MessageRecord, PostRecord, SessionSnapshot, UserRecord
from .base import Backend, MutationOp, SetMutation, validate_mutations

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (table, owner column, member column) for each set-valued field.
_SET_TABLES: dict[tuple[str, str], tuple[Table, str, str]] = {
    (USERS, "friends"): (user_friends, "user_id", "friend_id"),
    (USERS, "friend_requests"): (friend_requests, "recipient_id", "requester_id"),
    (POSTS, "likes"): (post_likes, "post_id", "user_id"),
}

_DISK_FULL_MARKERS = ("database or disk is full", "disk full", "no space left")


def _aware(value: datetime | None) -> datetime | None:
    # sqlite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlBackend(Backend):
    """Stores the collections in relational tables.

    Set fields live in association tables. An ``add`` is an insert that
    ignores an existing row and a ``remove`` is a delete, so two writers
    never overwrite each other's membership changes. Blocking database work
    runs in a worker thread.
    """

    name = "sql"
    supports_change_feed = False

    def __init__(self, engine: Engine, *, create_schema: bool = True) -> None:
        self._engine = engine
        self._session_factory: sessionmaker[Session] = build_session_factory(engine)
        if create_schema:
            init_db(engine)

    async def _run(self, operation: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._transaction, operation, *args)

    def _transaction(self, operation: Callable[..., T], *args: Any) -> T:
        session = self._session_factory()
        try:
            result = operation(session, *args)
            session.commit()
            return result
        except StoreError:
            session.rollback()
            raise
        except IntegrityError as exc:
            session.rollback()
            detail = str(exc.orig).lower()
            if "handle" in detail:
                raise HandleTaken() from exc
            if "foreign key" in detail:
                raise NotFound("Referenced record not found") from exc
            logger.exception("Integrity violation in %s", getattr(operation, "__name__", "operation"))
            raise BackendUnavailable("Write rejected by the database") from exc
        except OperationalError as exc:
            session.rollback()
            if any(marker in str(exc.orig).lower() for marker in _DISK_FULL_MARKERS):
                raise CapacityExceeded() from exc
            logger.exception("Database unavailable during %s", getattr(operation, "__name__", "operation"))
            raise BackendUnavailable() from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Database error during %s", getattr(operation, "__name__", "operation"))
            raise BackendUnavailable() from exc
        finally:
            session.close()

    async def close(self) -> None:
        await asyncio.to_thread(self._engine.dispose)

    # Row conversion --------------------------------------------------------

    @staticmethod
    def _members(session: Session, table: Table, owner: str, member: str, owner_ids: Iterable[UUID]) -> dict[UUID, set[UUID]]:
        ids = list(owner_ids)
        grouped: dict[UUID, set[UUID]] = defaultdict(set)
        if not ids:
            return grouped
        rows = session.execute(select(table.c[owner], table.c[member]).where(table.c[owner].in_(ids)))
        for owner_id, member_id in rows:
            grouped[owner_id].add(member_id)
        return grouped

    def _user_records(self, session: Session, rows: Sequence[User]) -> list[UserRecord]:
        ids = [row.id for row in rows]
        friends = self._members(session, user_friends, "user_id", "friend_id", ids)
        requests = self._members(session, friend_requests, "recipient_id", "requester_id", ids)
        return [
            UserRecord(
                id=row.id,
                handle=row.handle,
                display_name=row.display_name,
                credential_hash=row.credential_hash or "",
                email=row.email,
                bio=row.bio or "",
                avatar_url=row.avatar_url,
                cover_url=row.cover_url,
                friends=friends.get(row.id, set()),
                friend_requests=requests.get(row.id, set()),
                role=row.role,
                status=row.status,
                joined_at=_aware(row.joined_at),
            )
            for row in rows
        ]

    def _post_records(self, session: Session, rows: Sequence[Post]) -> list[PostRecord]:
        likes = self._members(session, post_likes, "post_id", "user_id", [row.id for row in rows])
        records: list[PostRecord] = []
        for row in rows:
            visible_to = {UUID(str(value)) for value in row.visible_to} if row.visible_to is not None else None
            records.append(
                PostRecord(
                    id=row.id,
                    author_id=row.author_id,
                    text=row.text or "",
                    image_url=row.image_url,
                    likes=likes.get(row.id, set()),
                    comments=[
                        CommentRecord(
                            id=comment.id,
                            author_id=comment.author_id,
                            text=comment.text,
                            created_at=_aware(comment.created_at),
                        )
                        for comment in row.comments
                    ],
                    created_at=_aware(row.created_at),
                    shared_from_id=row.shared_from_id,
                    visible_to=visible_to,
                )
            )
        return records

    @staticmethod
    def _message_record(row: Message) -> MessageRecord:
        return MessageRecord(
            id=row.id,
            from_id=row.from_id,
            to_id=row.to_id,
            text=row.text,
            timestamp=_aware(row.timestamp),
            read=bool(row.read),
        )

    # Users -----------------------------------------------------------------

    async def insert_user(self, user: UserRecord) -> UserRecord:
        return await self._run(self._insert_user, user)

    def _insert_user(self, session: Session, user: UserRecord) -> UserRecord:
        if session.scalar(select(User.id).where(User.handle == user.handle)) is not None:
            raise HandleTaken()
        row = User(
            id=user.id,
            handle=user.handle,
            display_name=user.display_name,
            credential_hash=user.credential_hash,
            email=user.email,
            bio=user.bio,
            avatar_url=user.avatar_url,
            cover_url=user.cover_url,
            role=user.role.value,
            status=user.status.value,
            joined_at=user.joined_at,
        )
        session.add(row)
        session.flush()
        for friend_id in user.friends:
            session.execute(insert(user_friends).values(user_id=user.id, friend_id=friend_id))
        for requester_id in user.friend_requests:
            session.execute(insert(friend_requests).values(recipient_id=user.id, requester_id=requester_id))
        return user.model_copy(deep=True)

    async def get_user(self, user_id: UUID) -> UserRecord | None:
        return await self._run(self._get_user, user_id)

    def _get_user(self, session: Session, user_id: UUID) -> UserRecord | None:
        row = session.get(User, user_id)
        return self._user_records(session, [row])[0] if row else None

    async def find_user_by_handle(self, handle: str) -> UserRecord | None:
        return await self._run(self._find_user_by_handle, handle)

    def _find_user_by_handle(self, session: Session, handle: str) -> UserRecord | None:
        row = session.scalar(select(User).where(User.handle == handle))
        return self._user_records(session, [row])[0] if row else None

    async def list_users(self) -> list[UserRecord]:
        return await self._run(self._list_users)

    def _list_users(self, session: Session) -> list[UserRecord]:
        rows = list(session.scalars(select(User).order_by(User.joined_at.asc())))
        return self._user_records(session, rows)

    async def update_user_fields(self, user_id: UUID, fields: Mapping[str, Any]) -> UserRecord:
        return await self._run(self._update_user_fields, user_id, dict(fields))

    def _update_user_fields(self, session: Session, user_id: UUID, fields: dict[str, Any]) -> UserRecord:
        unknown = set(fields) - USER_SCALAR_FIELDS
        if unknown:
            raise ValidationFailed(f"Cannot overwrite user fields: {', '.join(sorted(unknown))}")
        row = session.get(User, user_id)
        if row is None:
            raise NotFound("User not found")
        handle = fields.get("handle")
        if handle is not None:
            owner = session.scalar(select(User.id).where(User.handle == handle, User.id != user_id))
            if owner is not None:
                raise HandleTaken()
        values = {key: getattr(value, "value", value) for key, value in fields.items()}
        session.execute(update(User).where(User.id == user_id).values(**values))
        session.flush()
        session.refresh(row)
        return self._user_records(session, [row])[0]

    async def delete_user(self, user_id: UUID) -> bool:
        return await self._run(self._delete_user, user_id)

    def _delete_user(self, session: Session, user_id: UUID) -> bool:
        session.execute(delete(user_friends).where(or_(user_friends.c.user_id == user_id, user_friends.c.friend_id == user_id)))
        session.execute(
            delete(friend_requests).where(
                or_(friend_requests.c.recipient_id == user_id, friend_requests.c.requester_id == user_id)
            )
        )
        result = session.execute(delete(User).where(User.id == user_id))
        return bool(result.rowcount)

    # Posts -----------------------------------------------------------------

    async def insert_post(self, post: PostRecord) -> PostRecord:
        return await self._run(self._insert_post, post)

    def _insert_post(self, session: Session, post: PostRecord) -> PostRecord:
        row = Post(
            id=post.id,
            author_id=post.author_id,
            text=post.text,
            image_url=post.image_url,
            created_at=post.created_at,
            shared_from_id=post.shared_from_id,
            visible_to=sorted(str(value) for value in post.visible_to) if post.visible_to is not None else None,
        )
        row.comments = [
            PostComment(id=comment.id, author_id=comment.author_id, text=comment.text, created_at=comment.created_at)
            for comment in post.comments
        ]
        session.add(row)
        session.flush()
        for user_id in post.likes:
            session.execute(insert(post_likes).values(post_id=post.id, user_id=user_id))
        return post.model_copy(deep=True)

    def _post_query(self):
        return select(Post).options(selectinload(Post.comments))

    async def get_post(self, post_id: UUID) -> PostRecord | None:
        return await self._run(self._get_post, post_id)

    def _get_post(self, session: Session, post_id: UUID) -> PostRecord | None:
        row = session.scalar(self._post_query().where(Post.id == post_id))
        return self._post_records(session, [row])[0] if row else None

    async def list_posts(self) -> list[PostRecord]:
        return await self._run(self._list_posts)

    def _list_posts(self, session: Session) -> list[PostRecord]:
        rows = list(session.scalars(self._post_query().order_by(Post.created_at.desc(), Post.seq.desc())))
        return self._post_records(session, rows)

    async def count_posts(self) -> int:
        return await self._run(lambda session: int(session.scalar(select(func.count()).select_from(Post)) or 0))

    async def delete_post(self, post_id: UUID) -> bool:
        return await self._run(self._delete_posts, [post_id])

    def _delete_posts(self, session: Session, post_ids: list[UUID]) -> bool:
        if not post_ids:
            return False
        session.execute(delete(post_likes).where(post_likes.c.post_id.in_(post_ids)))
        session.execute(delete(PostComment).where(PostComment.post_id.in_(post_ids)))
        result = session.execute(delete(Post).where(Post.id.in_(post_ids)))
        return bool(result.rowcount)

    async def evict_posts(self, capacity: int) -> list[UUID]:
        return await self._run(self._evict_posts, capacity)

    def _evict_posts(self, session: Session, capacity: int) -> list[UUID]:
        total = int(session.scalar(select(func.count()).select_from(Post)) or 0)
        excess = total - capacity
        if excess <= 0:
            return []
        oldest = list(session.scalars(select(Post.id).order_by(Post.seq.asc()).limit(excess)))
        self._delete_posts(session, oldest)
        return oldest

    async def append_comment(self, post_id: UUID, comment: CommentRecord) -> PostRecord:
        return await self._run(self._append_comment, post_id, comment)

    def _append_comment(self, session: Session, post_id: UUID, comment: CommentRecord) -> PostRecord:
        if session.scalar(select(Post.seq).where(Post.id == post_id)) is None:
            raise NotFound("Post not found")
        session.add(
            PostComment(
                id=comment.id,
                post_id=post_id,
                author_id=comment.author_id,
                text=comment.text,
                created_at=comment.created_at,
            )
        )
        session.flush()
        session.expire_all()
        return self._get_post(session, post_id)

    # Messages --------------------------------------------------------------

    async def insert_message(self, message: MessageRecord) -> MessageRecord:
        return await self._run(self._insert_message, message)

    def _insert_message(self, session: Session, message: MessageRecord) -> MessageRecord:
        session.add(
            Message(
                id=message.id,
                from_id=message.from_id,
                to_id=message.to_id,
                text=message.text,
                timestamp=message.timestamp,
                read=message.read,
            )
        )
        return message.model_copy(deep=True)

    async def list_messages(self, pair: tuple[UUID, UUID] | None = None) -> list[MessageRecord]:
        return await self._run(self._list_messages, pair)

    def _list_messages(self, session: Session, pair: tuple[UUID, UUID] | None) -> list[MessageRecord]:
        stmt = select(Message)
        if pair is not None:
            first, second = pair
            stmt = stmt.where(
                or_(
                    and_(Message.from_id == first, Message.to_id == second),
                    and_(Message.from_id == second, Message.to_id == first),
                )
            )
        stmt = stmt.order_by(Message.timestamp.asc(), Message.seq.asc())
        return [self._message_record(row) for row in session.scalars(stmt)]

    async def count_messages(self) -> int:
        return await self._run(lambda session: int(session.scalar(select(func.count()).select_from(Message)) or 0))

    async def evict_messages(self, count: int) -> list[UUID]:
        return await self._run(self._evict_messages, count)

    def _evict_messages(self, session: Session, count: int) -> list[UUID]:
        if count <= 0:
            return []
        oldest = list(session.scalars(select(Message.id).order_by(Message.seq.asc()).limit(count)))
        if oldest:
            session.execute(delete(Message).where(Message.id.in_(oldest)))
        return oldest

    async def mark_read(self, message_ids: Sequence[UUID]) -> int:
        return await self._run(self._mark_read, list(message_ids))

    def _mark_read(self, session: Session, message_ids: list[UUID]) -> int:
        if not message_ids:
            return 0
        result = session.execute(
            update(Message).where(Message.id.in_(message_ids), Message.read.is_(False)).values(read=True)
        )
        return int(result.rowcount or 0)

    # Session slot ----------------------------------------------------------

    async def save_session(self, snapshot: SessionSnapshot) -> None:
        await self._run(self._save_session, snapshot)

    def _save_session(self, session: Session, snapshot: SessionSnapshot) -> None:
        row = session.get(SessionState, SESSION_SLOT)
        payload = snapshot.user.model_dump(mode="json")
        if row is None:
            session.add(
                SessionState(slot=SESSION_SLOT, token=snapshot.token, payload=payload, created_at=snapshot.created_at)
            )
        else:
            row.token = snapshot.token
            row.payload = payload
            row.created_at = snapshot.created_at

    async def load_session(self) -> SessionSnapshot | None:
        return await self._run(self._load_session)

    def _load_session(self, session: Session) -> SessionSnapshot | None:
        row = session.get(SessionState, SESSION_SLOT)
        if row is None:
            return None
        return SessionSnapshot(
            token=row.token,
            user=UserRecord.model_validate(row.payload),
            created_at=_aware(row.created_at),
        )

    async def clear_session(self) -> None:
        await self._run(lambda session: session.execute(delete(SessionState)))

    # Field-level set mutation ---------------------------------------------

    async def apply(self, mutations: Sequence[SetMutation]) -> None:
        checked = validate_mutations(mutations)
        await self._run(self._apply, checked)

    def _apply(self, session: Session, mutations: list[SetMutation]) -> None:
        for mutation in mutations:
            owner_model = User if mutation.collection == USERS else Post
            if session.scalar(select(owner_model.id).where(owner_model.id == mutation.record_id)) is None:
                raise NotFound(f"{mutation.collection[:-1].capitalize()} not found")
            table, owner, member = _SET_TABLES[(mutation.collection, mutation.field)]
            if mutation.op is MutationOp.ADD:
                self._insert_ignore(session, table, {owner: mutation.record_id, member: mutation.value})
            else:
                session.execute(
                    delete(table).where(table.c[owner] == mutation.record_id, table.c[member] == mutation.value)
                )

    @staticmethod
    def _insert_ignore(session: Session, table: Table, values: dict[str, UUID]) -> None:
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            session.execute(pg_insert(table).values(**values).on_conflict_do_nothing())
        elif dialect == "sqlite":
            session.execute(sqlite_insert(table).values(**values).on_conflict_do_nothing())
        else:
            clauses = [table.c[key] == value for key, value in values.items()]
            if session.execute(select(*table.c).where(*clauses)).first() is None:
                session.execute(insert(table).values(**values))


__all__ = ["SqlBackend"]
