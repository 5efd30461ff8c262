"""User lookups shared by several routers."""

from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from warbler.core.security import Principal
from warbler.core.validators import normalize_email
from warbler.models import User
from warbler.schemas import UserListItem


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def user_list_item(user: User, principal: Principal) -> UserListItem:
    """List entry carrying the follow relation between ``user`` and the viewer."""

    item = UserListItem.model_validate(user)
    viewer_id = principal.user_id
    if viewer_id is not None:
        item.is_followed = viewer_id in user.follower_ids
        item.is_follower = any(followed.id == viewer_id for followed in user.following)
    return item


def find_by_email_or_username(db: Session, login: str) -> User | None:
    """Match ``login`` against usernames and against emails in their stored form."""

    try:
        email = normalize_email(login)
    except ValueError:
        email = login
    stmt = select(User).where(or_(User.email == email, User.username == login))
    return db.execute(stmt).scalars().first()


def ensure_username_available(db: Session, username: str, *, exclude_id: int | None = None) -> None:
    stmt = select(User.id).where(User.username == username)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This username already exists")


def ensure_email_available(db: Session, email: str, *, exclude_id: int | None = None) -> None:
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if db.execute(stmt).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This email already exists")
