"""Synchronization engine delivering live views to subscribers.

Two strategies share one ``Subscription`` interface:

* ``poll`` re-runs the read on a fixed interval.
* ``push`` watches the backend change feed; every relevant change marks the
  subscription dirty and a single worker re-reads and delivers, so a burst of
  writes collapses into one delivery of the latest state.

Store failures inside a tick are logged and the next tick retries. Neither a
failing read nor a failing callback ends a subscription.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Literal
from uuid import UUID

from ..backends import Backend, ChangeEvent, Unwatch
from ..config import Settings, get_settings
from ..constants import MESSAGES, POSTS, USERS
from ..errors import StoreError
from . import friendship_service, message_service, notification_service, post_service
from .session_service import UserSession

logger = logging.getLogger(__name__)

Callback = Callable[[Any], Awaitable[None] | None]
Reader = Callable[[], Awaitable[Any]]
Strategy = Literal["poll", "push"]


class Subscription:
    """Handle for one live view; ``cancel()`` stops future deliveries."""

    def __init__(
        self,
        name: str,
        session: UserSession,
        *,
        reader: Reader,
        callback: Callback,
        interval: float,
        on_close: Callable[["Subscription"], None] | None = None,
    ) -> None:
        self.name = name
        self.deliveries = 0
        self._session = session
        self._reader = reader
        self._callback = callback
        self._interval = interval
        self._on_close = on_close
        self._active = True
        self._dirty = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._unwatch: Unwatch | None = None

    def __repr__(self) -> str:
        return f"<Subscription {self.name} {'active' if self._active else 'cancelled'}>"

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
        self._dirty.set()
        if self._on_close is not None:
            self._on_close(self)
        logger.info("Subscription %s stopped after %d deliveries", self.name, self.deliveries)

    async def wait_closed(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    def start_polling(self) -> None:
        self._task = asyncio.create_task(self._poll_loop(), name=f"sync-poll-{self.name}")

    def start_push(self, store: Backend, collections: Iterable[str]) -> None:
        self._unwatch = store.watch(collections, self._on_change)
        self._task = asyncio.create_task(self._push_loop(), name=f"sync-push-{self.name}")

    def _on_change(self, event: ChangeEvent) -> None:
        if self._active:
            self._dirty.set()

    async def _tick(self) -> bool:
        """Read and deliver once; ``False`` when the tick needs a retry."""

        if not self._session.active:
            logger.info("Session for %s ended; stopping subscription", self.name)
            self.cancel()
            return True
        try:
            view = await self._reader()
        except StoreError as exc:
            logger.warning("Sync read for %s failed: %s", self.name, exc.message)
            return False
        except Exception:
            logger.exception("Unexpected error reading %s", self.name)
            return False
        if not self._active:
            return True
        try:
            result = self._callback(view)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Subscriber callback for %s failed", self.name)
            return False
        self.deliveries += 1
        return True

    async def _poll_loop(self) -> None:
        while self._active:
            await self._tick()
            if not self._active:
                break
            await asyncio.sleep(self._interval)

    async def _push_loop(self) -> None:
        delivered = await self._tick()
        while self._active:
            if not delivered:
                # no change event will replay a failed read
                await asyncio.sleep(self._interval)
                self._dirty.set()
            await self._dirty.wait()
            self._dirty.clear()
            if not self._active:
                break
            delivered = await self._tick()


class SyncEngine:
    """Creates subscriptions against one backend using the configured strategy."""

    def __init__(self, store: Backend, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._subscriptions: set[Subscription] = set()

    @property
    def strategy(self) -> Strategy:
        requested = self._settings.sync_strategy
        if requested == "poll":
            return "poll"
        if not self._store.supports_change_feed:
            if requested == "push":
                logger.warning("Backend %s has no change feed; falling back to polling", self._store.name)
            return "poll"
        return "push"

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    def _start(
        self,
        name: str,
        session: UserSession,
        callback: Callback,
        *,
        reader: Reader,
        collections: Iterable[str],
        interval: float,
    ) -> Subscription:
        session.require_active()
        subscription = Subscription(
            name,
            session,
            reader=reader,
            callback=callback,
            interval=interval,
            on_close=self._subscriptions.discard,
        )
        self._subscriptions.add(subscription)
        strategy = self.strategy
        if strategy == "push":
            subscription.start_push(self._store, collections)
        else:
            subscription.start_polling()
        logger.info("Subscription %s started (%s)", name, strategy)
        return subscription

    def subscribe_feed(self, session: UserSession, callback: Callback) -> Subscription:
        viewer_id = session.user_id
        return self._start(
            f"feed:{viewer_id}",
            session,
            callback,
            reader=lambda: post_service.list_feed(self._store, viewer_id),
            collections=(POSTS,),
            interval=self._settings.feed_poll_interval,
        )

    def subscribe_profile(self, session: UserSession, author_id: UUID, callback: Callback) -> Subscription:
        viewer_id = session.user_id
        return self._start(
            f"profile:{author_id}:{viewer_id}",
            session,
            callback,
            reader=lambda: post_service.list_profile_posts(self._store, author_id, viewer_id),
            collections=(POSTS,),
            interval=self._settings.feed_poll_interval,
        )

    def subscribe_conversation(self, session: UserSession, other_id: UUID, callback: Callback) -> Subscription:
        user_id = session.user_id
        return self._start(
            f"conversation:{user_id}:{other_id}",
            session,
            callback,
            reader=lambda: message_service.conversation(self._store, user_id, other_id),
            collections=(MESSAGES,),
            interval=self._settings.conversation_poll_interval,
        )

    def subscribe_friend_state(self, session: UserSession, callback: Callback) -> Subscription:
        user_id = session.user_id
        return self._start(
            f"friends:{user_id}",
            session,
            callback,
            reader=lambda: friendship_service.friend_state(self._store, user_id),
            collections=(USERS,),
            interval=self._settings.friend_state_poll_interval,
        )

    def subscribe_notifications(self, session: UserSession, callback: Callback) -> Subscription:
        user_id = session.user_id
        return self._start(
            f"notifications:{user_id}",
            session,
            callback,
            reader=lambda: notification_service.list_notifications(self._store, user_id),
            collections=(USERS, POSTS, MESSAGES),
            interval=self._settings.friend_state_poll_interval,
        )

    async def close(self) -> None:
        subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.cancel()
        await asyncio.gather(*(item.wait_closed() for item in subscriptions), return_exceptions=True)


__all__ = ["Subscription", "SyncEngine"]
