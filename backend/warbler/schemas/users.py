"""Schemas related to user profiles and the follow graph."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from warbler.core.validators import ensure_not_empty, normalize_email
from warbler.models import UserRole
from warbler.schemas.common import CamelModel, StatusResponse


class UserSummary(CamelModel):
    """Compact author block embedded in content payloads."""

    id: int
    username: str
    first_name: str
    last_name: str
    avatar: str | None = None


class UserRead(UserSummary):
    """Full user representation."""

    email: str
    active: bool
    role: UserRole
    socket_id: str | None = None
    follower_ids: list[int] = Field(default_factory=list)
    subscribed_room_ids: list[int] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class UserListItem(UserRead):
    """User as listed to another user, with follow flags relative to the viewer."""

    is_follower: bool = False
    is_followed: bool = False


class UserUpdate(CamelModel):
    """Payload for updating the current user's profile."""

    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    email: str | None = None

    @field_validator("first_name", "last_name", "username")
    @classmethod
    def _not_empty(cls, value: str | None, info) -> str | None:
        if value is None:
            return value
        return ensure_not_empty(value, info.field_name)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str | None) -> str | None:
        return normalize_email(value) if value is not None else None


class UserResponse(StatusResponse):
    user: UserRead


class UsersResponse(StatusResponse):
    users: list[UserListItem]
