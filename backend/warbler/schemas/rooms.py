"""Schemas for chat rooms and room messages."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from warbler.core.validators import ensure_not_empty
from warbler.schemas.common import CamelModel, StatusResponse
from warbler.schemas.users import UserSummary


class RoomCreate(CamelModel):
    """Payload for creating a room, optionally inviting one user."""

    room_name: str
    is_public: bool = True
    user_to_add: int | None = None

    @field_validator("room_name")
    @classmethod
    def _name(cls, value: str) -> str:
        return ensure_not_empty(value, "roomName")


class RoomRead(CamelModel):
    """Room representation returned to clients."""

    id: int
    name: str
    creator_id: int | None = None
    is_public: bool
    subscriber_ids: list[int] = Field(default_factory=list)
    users_online: list[int] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class MessageRead(CamelModel):
    """Chat message payload."""

    id: int
    room_id: int
    author_id: int
    author: UserSummary | None = None
    body: str
    created_at: datetime
    updated_at: datetime


class RoomResponse(StatusResponse):
    room: RoomRead


class RoomsResponse(StatusResponse):
    rooms: list[RoomRead]


class MessagesResponse(StatusResponse):
    messages: list[MessageRead]
