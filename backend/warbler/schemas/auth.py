"""Schemas for authentication flows."""

from __future__ import annotations

from pydantic import field_validator

from warbler.core.validators import check_password_strength, ensure_not_empty, normalize_email
from warbler.schemas.common import CamelModel, StatusResponse
from warbler.schemas.users import UserRead


class SignUpRequest(CamelModel):
    """Payload for creating a new, not yet activated, account."""

    first_name: str
    last_name: str
    username: str
    email: str
    password: str

    @field_validator("first_name", "last_name", "username")
    @classmethod
    def _not_empty(cls, value: str, info) -> str:
        return ensure_not_empty(value, info.field_name)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def _password(cls, value: str) -> str:
        return check_password_strength(value)


class SignInRequest(CamelModel):
    """Credentials used to sign in by email or username."""

    email_or_username: str
    password: str

    @field_validator("email_or_username", "password")
    @classmethod
    def _not_empty(cls, value: str, info) -> str:
        return ensure_not_empty(value, info.field_name)


class AuthResponse(StatusResponse):
    """User together with a fresh access/refresh token pair."""

    user: UserRead
    access_token: str
    refresh_token: str
