"""Security helpers for password hashing, session tokens and principals."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from fastapi import HTTPException, status
from passlib.context import CryptContext

from warbler.config import get_settings
from warbler.models import User, UserRole

settings = get_settings()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hashed counterpart."""

    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password for storing in the database."""

    return pwd_context.hash(password)


def _encode(user_id: int, secret: str, lifetime: timedelta) -> str:
    expire = datetime.now(timezone.utc) + lifetime
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    """Create a signed access token carrying the user id."""

    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(user_id, settings.jwt_secret_key, lifetime)


def create_refresh_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    """Create a refresh token signed with its own secret."""

    lifetime = expires_delta or timedelta(minutes=settings.refresh_token_expire_minutes)
    return _encode(user_id, settings.jwt_refresh_secret_key, lifetime)


def _subject(payload: Dict[str, Any]) -> int | None:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None


def decode_access_token(token: str) -> int:
    """Validate an access token and return the user id it was issued for."""

    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials"
        ) from exc
    user_id = _subject(payload)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    return user_id


def decode_refresh_token(token: str) -> int:
    """Validate a refresh token and return the user id it was issued for."""

    try:
        payload = jwt.decode(
            token, settings.jwt_refresh_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except jwt.InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Refresh token is broken or expired"
        ) from exc
    user_id = _subject(payload)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Refresh token is broken or expired")
    return user_id


@dataclass(frozen=True, slots=True)
class Principal:
    """Actor behind a request: an authenticated user or an anonymous caller."""

    user: User | None = None

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(user=None)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_active(self) -> bool:
        return self.user is not None and self.user.active

    @property
    def user_id(self) -> int | None:
        return self.user.id if self.user is not None else None

    def is_resource_owner(self, owner_id: int | None) -> bool:
        return self.user is not None and owner_id is not None and self.user.id == owner_id

    def is_in_role(self, role: UserRole) -> bool:
        return self.user is not None and self.user.role == role
