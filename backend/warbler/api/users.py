"""User directory and follow graph endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from warbler.api.deps import (
    Pagination,
    get_pagination,
    get_principal,
    require_active_user,
    require_user,
)
from warbler.core.security import Principal
from warbler.core.storage import build_public_url, store_avatar
from warbler.database import get_db
from warbler.models import TokenType, User, comment_likes, room_online_users, tweet_likes, user_followers
from warbler.schemas import StatusResponse, UserRead, UserResponse, UsersResponse, UserUpdate
from warbler.services.mail import MailService, get_mail_service
from warbler.services.tokens import delete_user_tokens, issue_token
from warbler.services.users import (
    ensure_email_available,
    ensure_username_available,
    get_user_or_404,
    user_list_item,
)

router = APIRouter(prefix="/users", tags=["users"])

logger = logging.getLogger(__name__)


def _page(db: Session, stmt, pagination: Pagination, principal: Principal) -> UsersResponse:
    stmt = stmt.order_by(User.id).offset(pagination.skip).limit(pagination.limit)
    users = db.execute(stmt).scalars().all()
    return UsersResponse(users=[user_list_item(user, principal) for user in users])


@router.get("", response_model=UsersResponse)
def list_users(
    search: str | None = Query(default=None, description="Substring of a name, username or email"),
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> UsersResponse:
    stmt = select(User)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                User.username.ilike(pattern),
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    return _page(db, stmt, pagination, principal)


@router.get("/current", response_model=UserResponse)
def read_current_user(user: User = Depends(require_user)) -> UserResponse:
    return UserResponse(user=UserRead.model_validate(user))


@router.put("/current", response_model=UserResponse)
async def update_current_user(
    payload: UserUpdate,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
    mail: MailService = Depends(get_mail_service),
) -> UserResponse:
    """Update profile fields; a new email deactivates the account until confirmed."""

    if payload.username is not None and payload.username != user.username:
        ensure_username_available(db, payload.username, exclude_id=user.id)
        user.username = payload.username
    if payload.first_name is not None:
        user.first_name = payload.first_name
    if payload.last_name is not None:
        user.last_name = payload.last_name

    email_changed = payload.email is not None and payload.email != user.email
    if email_changed:
        ensure_email_available(db, payload.email, exclude_id=user.id)
        user.email = payload.email
        user.active = False
    db.commit()
    db.refresh(user)

    if email_changed:
        delete_user_tokens(db, user.id, TokenType.CONFIRM_EMAIL)
        token = issue_token(db, user.id, TokenType.CONFIRM_EMAIL)
        await mail.send_confirmation(user.email, user.username, token.body)
        logger.info("User %s changed email; account awaits confirmation", user.id)
    return UserResponse(user=UserRead.model_validate(user))


@router.delete("/current", response_model=StatusResponse)
def delete_current_user(user: User = Depends(require_user), db: Session = Depends(get_db)) -> StatusResponse:
    """Delete the caller's tokens, then the caller."""

    delete_user_tokens(db, user.id)
    for table in (room_online_users, tweet_likes, comment_likes):
        db.execute(delete(table).where(table.c.user_id == user.id))
    db.delete(user)
    db.commit()
    logger.info("Deleted user %s", user.id)
    return StatusResponse()


@router.put("/change-avatar", response_model=UserResponse)
async def change_avatar(
    file: UploadFile = File(...),
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> UserResponse:
    stored = await store_avatar(file)
    user.avatar = build_public_url(stored.relative_path)
    db.commit()
    db.refresh(user)
    return UserResponse(user=UserRead.model_validate(user))


@router.get("/followers/{user_id}", response_model=UsersResponse)
def list_followers(
    user_id: int,
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> UsersResponse:
    get_user_or_404(db, user_id)
    stmt = (
        select(User)
        .join(user_followers, user_followers.c.follower_id == User.id)
        .where(user_followers.c.user_id == user_id)
    )
    return _page(db, stmt, pagination, principal)


@router.get("/follows/{user_id}", response_model=UsersResponse)
def list_follows(
    user_id: int,
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> UsersResponse:
    get_user_or_404(db, user_id)
    stmt = (
        select(User)
        .join(user_followers, user_followers.c.user_id == User.id)
        .where(user_followers.c.follower_id == user_id)
    )
    return _page(db, stmt, pagination, principal)


@router.put("/follow/{user_id}", response_model=UserResponse)
def follow_user(
    user_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> UserResponse:
    target = get_user_or_404(db, user_id)
    if target.id == user.id:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="You cannot follow yourself")
    if user in target.followers:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Already followed")
    target.followers.append(user)
    db.commit()
    db.refresh(target)
    return UserResponse(user=UserRead.model_validate(target))


@router.put("/unfollow/{user_id}", response_model=UserResponse)
def unfollow_user(
    user_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> UserResponse:
    target = get_user_or_404(db, user_id)
    if user not in target.followers:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Not followed")
    target.followers.remove(user)
    db.commit()
    db.refresh(target)
    return UserResponse(user=UserRead.model_validate(target))


@router.get("/{user_id}", response_model=UserResponse)
def read_user(user_id: int, db: Session = Depends(get_db)) -> UserResponse:
    return UserResponse(user=UserRead.model_validate(get_user_or_404(db, user_id)))
