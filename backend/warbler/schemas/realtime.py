"""Payloads exchanged over the realtime socket."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from warbler.core.validators import ensure_not_empty
from warbler.schemas.common import CamelModel


class SocketFrame(BaseModel):
    """Envelope of every frame: an event name and its data."""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class UserConnectPayload(CamelModel):
    user_id: int


class RoomPresencePayload(CamelModel):
    room_id: int
    user_id: int


class MessageNewPayload(RoomPresencePayload):
    body: str

    @field_validator("body")
    @classmethod
    def _body(cls, value: str) -> str:
        return ensure_not_empty(value, "body")


class MessageDeletePayload(RoomPresencePayload):
    message_id: int


class MessageEditPayload(MessageDeletePayload):
    body: str

    @field_validator("body")
    @classmethod
    def _body(cls, value: str) -> str:
        return ensure_not_empty(value, "body")
