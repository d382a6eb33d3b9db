"""WebSocket channel manager bridging sync subscriptions to sockets."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

from .sync_service import Subscription

logger = logging.getLogger(__name__)

Deliver = Callable[[Any], Awaitable[None]]


class ChannelManager:
    """Track per-channel WebSocket connections sharing one subscription.

    The first socket joining a channel starts its subscription; the last one
    leaving cancels it.
    """

    def __init__(self) -> None:
        self._channels: dict[str, set[WebSocket]] = {}
        self._connections: dict[WebSocket, str] = {}
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = asyncio.Lock()

    async def connect(
        self,
        channel: str,
        websocket: WebSocket,
        subscribe: Callable[[Deliver], Subscription],
    ) -> None:
        await websocket.accept()
        async with self._lock:
            group = self._channels.setdefault(channel, set())
            group.add(websocket)
            self._connections[websocket] = channel
            if channel not in self._subscriptions:
                self._subscriptions[channel] = subscribe(lambda payload: self.broadcast(channel, payload))

    async def disconnect(self, websocket: WebSocket) -> None:
        subscription: Subscription | None = None
        async with self._lock:
            channel = self._connections.pop(websocket, None)
            if not channel:
                return
            group = self._channels.get(channel)
            if group is not None:
                group.discard(websocket)
                if not group:
                    self._channels.pop(channel, None)
                    subscription = self._subscriptions.pop(channel, None)
        if subscription is not None:
            subscription.cancel()

    async def broadcast(self, channel: str, payload: Any) -> None:
        serialized = json.dumps(jsonable_encoder(payload))
        async with self._lock:
            targets = list(self._channels.get(channel, ()))
        for connection in targets:
            try:
                await connection.send_text(serialized)
            except Exception:
                logger.info("Dropping unreachable socket on %s", channel)
                await self.disconnect(connection)

    def channel_count(self) -> int:
        return len(self._channels)


channel_manager = ChannelManager()


__all__ = ["channel_manager", "ChannelManager"]
