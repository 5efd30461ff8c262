"""Connection registry for the realtime gateway.

Each socket is tracked under a generated connection id. Rooms are broadcast
groups of connection ids, joined when a user enters a room.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from warbler.monitoring.metrics import realtime_connections

logger = logging.getLogger(__name__)


def build_frame(event: str, data: Any) -> dict[str, Any]:
    return {"event": event, "data": data}


class RoomConnectionHub:
    """Keeps track of open sockets and the room groups they joined."""

    def __init__(self) -> None:
        self._connections: Dict[str, WebSocket] = {}
        self._groups: Dict[int, Set[str]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, connection_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections[connection_id] = websocket
        realtime_connections.inc()

    async def disconnect(self, connection_id: str) -> list[int]:
        """Forget a connection and return the rooms it had joined."""

        async with self._lock:
            if self._connections.pop(connection_id, None) is None:
                return []
            joined = [room_id for room_id, members in self._groups.items() if connection_id in members]
            for room_id in joined:
                self._leave_locked(room_id, connection_id)
        realtime_connections.dec()
        return joined

    async def join(self, room_id: int, connection_id: str) -> None:
        async with self._lock:
            self._groups[room_id].add(connection_id)

    async def leave(self, room_id: int, connection_id: str) -> None:
        async with self._lock:
            self._leave_locked(room_id, connection_id)

    def _leave_locked(self, room_id: int, connection_id: str) -> None:
        members = self._groups.get(room_id)
        if not members:
            return
        members.discard(connection_id)
        if not members:
            self._groups.pop(room_id, None)

    async def members(self, room_id: int) -> set[str]:
        async with self._lock:
            return set(self._groups.get(room_id, set()))

    async def send(self, connection_id: str, event: str, data: Any) -> bool:
        async with self._lock:
            websocket = self._connections.get(connection_id)
        if websocket is None:
            return False
        return await _send(websocket, build_frame(event, data))

    async def broadcast_room(self, room_id: int, event: str, data: Any) -> None:
        async with self._lock:
            sockets = [
                self._connections[connection_id]
                for connection_id in self._groups.get(room_id, set())
                if connection_id in self._connections
            ]
        frame = build_frame(event, data)
        for socket in sockets:
            await _send(socket, frame)

    async def broadcast(self, event: str, data: Any) -> None:
        async with self._lock:
            sockets = list(self._connections.values())
        frame = build_frame(event, data)
        for socket in sockets:
            await _send(socket, frame)


async def _send(websocket: WebSocket, payload: dict[str, Any]) -> bool:
    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(payload)
        return True
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("Failed to send websocket message: %s", exc)
        return False


room_hub = RoomConnectionHub()
"""Singleton hub shared by the websocket endpoint."""
