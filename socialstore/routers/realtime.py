"""WebSocket endpoints streaming live feed, conversation and friend views."""
from __future__ import annotations

import json
import logging
from typing import Any, Callable
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ..errors import StoreError
from ..services.realtime import Deliver, channel_manager
from ..services.session_service import UserSession
from ..services.sync_service import Subscription, SyncEngine

router = APIRouter()
logger = logging.getLogger(__name__)


async def _authenticate(websocket: WebSocket, token: str | None) -> UserSession | None:
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    try:
        return await websocket.app.state.sessions.resolve(token)
    except StoreError as exc:
        logger.info("Rejected socket: %s", exc.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None


async def _serve(websocket: WebSocket, channel: str, subscribe: Callable[[Deliver], Subscription]) -> None:
    await channel_manager.connect(channel, websocket, subscribe)
    logger.info("Socket joined %s", channel)
    try:
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            except Exception:
                logger.exception("Socket receive failed on %s", channel)
                break

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                payload = {"type": raw}
            if not isinstance(payload, dict):
                continue

            message_type = (payload.get("type") or "").lower()
            if message_type == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
            # Anything else only keeps the connection alive.
    finally:
        await channel_manager.disconnect(websocket)
        logger.info("Socket left %s", channel)


def _envelope(kind: str, deliver: Deliver) -> Callable[[Any], Any]:
    return lambda view: deliver({"type": kind, "data": view})


@router.websocket("/ws/feed")
async def feed_updates(websocket: WebSocket, token: str | None = None) -> None:
    session = await _authenticate(websocket, token)
    if session is None:
        return
    engine: SyncEngine = websocket.app.state.sync
    await _serve(
        websocket,
        f"feed:{session.user_id}",
        lambda deliver: engine.subscribe_feed(session, _envelope("feed", deliver)),
    )


@router.websocket("/ws/messages/{friend_id}")
async def conversation_updates(websocket: WebSocket, friend_id: UUID, token: str | None = None) -> None:
    session = await _authenticate(websocket, token)
    if session is None:
        return
    engine: SyncEngine = websocket.app.state.sync
    await _serve(
        websocket,
        f"conversation:{session.user_id}:{friend_id}",
        lambda deliver: engine.subscribe_conversation(session, friend_id, _envelope("conversation", deliver)),
    )


@router.websocket("/ws/friends")
async def friend_updates(websocket: WebSocket, token: str | None = None) -> None:
    session = await _authenticate(websocket, token)
    if session is None:
        return
    engine: SyncEngine = websocket.app.state.sync
    await _serve(
        websocket,
        f"friends:{session.user_id}",
        lambda deliver: engine.subscribe_friend_state(session, _envelope("friends", deliver)),
    )


@router.websocket("/ws/notifications")
async def notification_updates(websocket: WebSocket, token: str | None = None) -> None:
    session = await _authenticate(websocket, token)
    if session is None:
        return
    engine: SyncEngine = websocket.app.state.sync
    await _serve(
        websocket,
        f"notifications:{session.user_id}",
        lambda deliver: engine.subscribe_notifications(session, _envelope("notifications", deliver)),
    )


__all__ = ["router"]
