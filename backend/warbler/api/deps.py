"""FastAPI dependencies for the API layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy.orm import Session

from warbler.core.security import Principal, decode_access_token
from warbler.database import get_db
from warbler.models import User

logger = logging.getLogger(__name__)


def get_principal(
    x_auth_token: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the ``x-auth-token`` header to a user, or to an anonymous principal.

    A missing or invalid token never fails here; gates further down decide
    whether an anonymous caller may proceed.
    """

    if not x_auth_token:
        return Principal.anonymous()
    try:
        user_id = decode_access_token(x_auth_token)
    except HTTPException as exc:
        logger.debug("Rejected access token: %s", exc.detail)
        return Principal.anonymous()
    user = db.get(User, user_id)
    if user is None:
        return Principal.anonymous()
    return Principal(user=user)


def require_user(principal: Principal = Depends(get_principal)) -> User:
    if principal.user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return principal.user


def require_active_user(user: User = Depends(require_user)) -> User:
    if not user.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account not activated")
    return user


@dataclass(slots=True)
class Pagination:
    skip: int
    limit: int


def get_pagination(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> Pagination:
    return Pagination(skip=skip, limit=limit)
