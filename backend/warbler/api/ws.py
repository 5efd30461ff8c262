"""Websocket gateway for room presence and chat messages."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Dict, TypeVar
from uuid import uuid4

from fastapi import APIRouter, HTTPException, WebSocket
from fastapi.websockets import WebSocketDisconnect, WebSocketState
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from warbler.config import get_settings
from warbler.database import get_db_session
from warbler.models import Room, User
from warbler.monitoring.metrics import realtime_events_total
from warbler.schemas import (
    MessageDeletePayload,
    MessageEditPayload,
    MessageNewPayload,
    RoomPresencePayload,
    SocketFrame,
    UserConnectPayload,
    UserRead,
)
from warbler.services import messages as message_service
from warbler.services import rooms as room_service
from warbler.services.realtime import build_frame, room_hub
from warbler.services.users import get_user_or_404

router = APIRouter(tags=["ws"])

settings = get_settings()

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_EVENT = "connect_error"
INTERNAL_ERROR = "Internal server error"

EventHandler = Callable[[str, Dict[str, Any]], Awaitable[None]]


async def iter_keepalive_messages(
    websocket: WebSocket,
    receiver: Callable[[], Awaitable[T]],
    *,
    timeout_seconds: float | int | None,
    ping_interval_seconds: float | int | None,
    ping_payload: Dict[str, Any] | None = None,
) -> AsyncIterator[T]:
    """Yield inbound messages, pinging the client whenever it stays silent too long."""

    ping_payload = ping_payload or build_frame("ping", {})
    timeout = float(timeout_seconds or 0)
    interval = float(ping_interval_seconds or 0)
    last_activity = time.monotonic()
    last_ping: float | None = None

    while True:
        try:
            if timeout > 0:
                message = await asyncio.wait_for(receiver(), timeout=timeout)
            else:
                message = await receiver()
        except asyncio.TimeoutError:
            if websocket.application_state != WebSocketState.CONNECTED:
                break
            now = time.monotonic()
            idle = now - last_activity >= interval and (last_ping is None or now - last_ping >= interval)
            if interval <= 0 or idle:
                if not await _send_json(websocket, ping_payload):
                    break
                last_ping = now
            continue
        except (RuntimeError, WebSocketDisconnect):
            break
        last_activity = time.monotonic()
        last_ping = None
        yield message


async def _send_json(websocket: WebSocket, data: dict[str, Any]) -> bool:
    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("Failed to send websocket message: %s", exc)
        return False


def _user_snapshot(user: User) -> dict[str, Any]:
    return UserRead.model_validate(user).model_dump(mode="json", by_alias=True)


def _online_snapshot(room: Room) -> dict[str, Any]:
    return {"roomId": room.id, "usersOnline": room.users_online}


async def _user_connect(connection_id: str, data: Dict[str, Any]) -> None:
    payload = UserConnectPayload.model_validate(data)
    with get_db_session() as db:
        user = get_user_or_404(db, payload.user_id)
        user.socket_id = connection_id
        db.commit()
        db.refresh(user)
        snapshot = _user_snapshot(user)
    logger.info("User %s connected as %s", payload.user_id, connection_id)
    await room_hub.broadcast("USER:CONNECTED", snapshot)


async def _room_enter(connection_id: str, data: Dict[str, Any]) -> None:
    payload = RoomPresencePayload.model_validate(data)
    with get_db_session() as db:
        snapshot = _online_snapshot(room_service.enter_room(db, payload.room_id, payload.user_id))
    await room_hub.join(payload.room_id, connection_id)
    await room_hub.broadcast_room(payload.room_id, "ROOM:SET_USERS", snapshot)


async def _room_leave(connection_id: str, data: Dict[str, Any]) -> None:
    payload = RoomPresencePayload.model_validate(data)
    with get_db_session() as db:
        snapshot = _online_snapshot(room_service.leave_room(db, payload.room_id, payload.user_id))
    await room_hub.broadcast_room(payload.room_id, "ROOM:SET_USERS", snapshot)
    await room_hub.leave(payload.room_id, connection_id)


async def _message_new(connection_id: str, data: Dict[str, Any]) -> None:
    payload = MessageNewPayload.model_validate(data)
    with get_db_session() as db:
        message = message_service.create_message(db, payload.room_id, payload.user_id, payload.body)
        snapshot = message_service.serialize_message(message)
    await room_hub.broadcast_room(payload.room_id, "ROOM:NEW_MESSAGE", snapshot)


async def _message_delete(connection_id: str, data: Dict[str, Any]) -> None:
    payload = MessageDeletePayload.model_validate(data)
    with get_db_session() as db:
        snapshot = message_service.delete_message(
            db, payload.room_id, payload.user_id, payload.message_id
        )
    await room_hub.broadcast_room(payload.room_id, "ROOM:DELETE_MESSAGE", snapshot)


async def _message_edit(connection_id: str, data: Dict[str, Any]) -> None:
    payload = MessageEditPayload.model_validate(data)
    with get_db_session() as db:
        message = message_service.edit_message(
            db, payload.room_id, payload.user_id, payload.message_id, payload.body
        )
        snapshot = message_service.serialize_message(message)
    await room_hub.broadcast_room(payload.room_id, "ROOM:EDIT_MESSAGE", snapshot)


EVENT_HANDLERS: Dict[str, EventHandler] = {
    "USER:CONNECT": _user_connect,
    "ROOM:ENTER": _room_enter,
    "ROOM:LEAVE": _room_leave,
    "MESSAGE:NEW": _message_new,
    "MESSAGE:DELETE": _message_delete,
    "MESSAGE:EDIT": _message_edit,
}


async def _send_error(connection_id: str, message: str) -> None:
    await room_hub.send(connection_id, ERROR_EVENT, {"message": message})


async def receive_frame(websocket: WebSocket) -> str | None:
    """Receive one client frame; binary frames come back as ``None``."""

    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000))
    return message.get("text")


async def _dispatch(connection_id: str, raw: str | None) -> None:
    if raw is None:
        realtime_events_total.inc(event="invalid", outcome="error")
        await _send_error(connection_id, "Malformed frame")
        return
    try:
        frame = SocketFrame.model_validate_json(raw)
    except ValidationError:
        realtime_events_total.inc(event="invalid", outcome="error")
        await _send_error(connection_id, "Malformed frame")
        return

    if frame.event == "ping":
        await room_hub.send(connection_id, "pong", {})
        return
    if frame.event == "pong":
        return

    handler = EVENT_HANDLERS.get(frame.event)
    if handler is None:
        realtime_events_total.inc(event="unknown", outcome="error")
        await _send_error(connection_id, f"Unknown event {frame.event}")
        return

    try:
        await handler(connection_id, frame.data)
    except HTTPException as exc:
        realtime_events_total.inc(event=frame.event, outcome="error")
        await _send_error(connection_id, str(exc.detail))
    except ValidationError as exc:
        realtime_events_total.inc(event=frame.event, outcome="error")
        fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
        await _send_error(connection_id, f"Invalid payload for {frame.event}: {fields}")
    except SQLAlchemyError:
        realtime_events_total.inc(event=frame.event, outcome="error")
        logger.exception("Store failure while handling %s on %s", frame.event, connection_id)
        await _send_error(connection_id, INTERNAL_ERROR)
    except Exception:
        realtime_events_total.inc(event=frame.event, outcome="error")
        logger.exception("Unexpected failure while handling %s on %s", frame.event, connection_id)
        await _send_error(connection_id, INTERNAL_ERROR)
    else:
        realtime_events_total.inc(event=frame.event, outcome="ok")


async def _disconnect(connection_id: str) -> None:
    """Leave every room entered on the connection and announce the user as gone."""

    joined = await room_hub.disconnect(connection_id)
    with get_db_session() as db:
        user = db.execute(select(User).where(User.socket_id == connection_id)).scalars().first()
        if user is None:
            return
        updates: list[tuple[int, dict[str, Any]]] = []
        for room_id in joined:
            if db.get(Room, room_id) is None:
                continue
            updates.append((room_id, _online_snapshot(room_service.leave_room(db, room_id, user.id))))
        user.socket_id = None
        db.commit()
        db.refresh(user)
        snapshot = _user_snapshot(user)

    for room_id, online in updates:
        await room_hub.broadcast_room(room_id, "ROOM:SET_USERS", online)
    await room_hub.broadcast("USER:DISCONNECTED", snapshot)
    logger.info("User %s disconnected from %s", snapshot["id"], connection_id)


@router.websocket("/ws")
async def realtime_gateway(websocket: WebSocket) -> None:
    await websocket.accept()
    connection_id = uuid4().hex
    await room_hub.connect(connection_id, websocket)
    logger.debug("Websocket %s opened", connection_id)
    try:
        async for raw in iter_keepalive_messages(
            websocket,
            lambda: receive_frame(websocket),
            timeout_seconds=settings.websocket_keepalive_timeout_seconds,
            ping_interval_seconds=settings.websocket_keepalive_ping_interval_seconds,
        ):
            await _dispatch(connection_id, raw)
    finally:
        await _disconnect(connection_id)
