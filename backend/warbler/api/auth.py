"""Authentication API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from warbler.api.deps import require_user
from warbler.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)
from warbler.core.storage import build_public_url, store_avatar
from warbler.database import get_db
from warbler.models import TokenType, User
from warbler.schemas import AuthResponse, SignInRequest, SignUpRequest, StatusResponse, UserRead
from warbler.services.mail import MailService, get_mail_service
from warbler.services.tokens import delete_user_tokens, issue_token, redeem_token
from warbler.services.users import (
    ensure_email_available,
    ensure_username_available,
    find_by_email_or_username,
    get_user_or_404,
)

router = APIRouter()

logger = logging.getLogger(__name__)


def _with_tokens(user: User) -> AuthResponse:
    return AuthResponse(
        user=UserRead.model_validate(user),
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )


def _body_errors(exc: ValidationError) -> RequestValidationError:
    return RequestValidationError(
        [{**error, "loc": ("body", *error["loc"])} for error in exc.errors()]
    )


async def read_sign_up(request: Request) -> tuple[SignUpRequest, UploadFile | None]:
    """Parse sign-up credentials from a JSON body or a multipart form.

    The multipart variant may carry an optional avatar under ``file``.
    """

    upload: UploadFile | None = None
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        data = {key: value for key, value in form.items() if isinstance(value, str)}
        candidate = form.get("file")
        if isinstance(candidate, UploadFile) and candidate.filename:
            upload = candidate
    else:
        try:
            data = await request.json()
        except ValueError as exc:
            raise RequestValidationError(
                [{"type": "json_invalid", "loc": ("body",), "msg": "Invalid JSON body", "input": None}]
            ) from exc
    try:
        return SignUpRequest.model_validate(data), upload
    except ValidationError as exc:
        raise _body_errors(exc) from exc


@router.post("/sign-up", response_model=StatusResponse)
async def sign_up(
    credentials: tuple[SignUpRequest, UploadFile | None] = Depends(read_sign_up),
    db: Session = Depends(get_db),
    mail: MailService = Depends(get_mail_service),
) -> StatusResponse:
    """Register an inactive account and mail a confirmation link.

    Creating the user, issuing the token and sending the mail are separate
    steps; a failure in a later step leaves the earlier ones in place.
    """

    payload, avatar_upload = credentials
    ensure_username_available(db, payload.username)
    ensure_email_available(db, payload.email)
    avatar = None
    if avatar_upload is not None:
        stored = await store_avatar(avatar_upload)
        avatar = build_public_url(stored.relative_path)

    user = User(
        first_name=payload.first_name,
        last_name=payload.last_name,
        username=payload.username,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        avatar=avatar,
        active=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.username)

    token = issue_token(db, user.id, TokenType.CONFIRM_EMAIL)
    await mail.send_confirmation(user.email, user.username, token.body)
    return StatusResponse()


@router.post("/sign-in", response_model=AuthResponse)
def sign_in(payload: SignInRequest, db: Session = Depends(get_db)) -> AuthResponse:
    user = find_by_email_or_username(db, payload.email_or_username)
    if user is None or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_417_EXPECTATION_FAILED,
            detail="User doesn't exist or password doesn't match",
        )
    if not user.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account not activated")
    return _with_tokens(user)


@router.post("/confirm-email/{token}", response_model=AuthResponse)
def confirm_email(token: str, db: Session = Depends(get_db)) -> AuthResponse:
    """Redeem a confirmation token and activate its owner."""

    user = get_user_or_404(db, redeem_token(db, token, TokenType.CONFIRM_EMAIL))
    user.active = True
    db.commit()
    db.refresh(user)
    logger.info("Activated user %s", user.id)
    return _with_tokens(user)


@router.post("/resend-confirm-email", response_model=StatusResponse)
async def resend_confirm_email(
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    mail: MailService = Depends(get_mail_service),
) -> StatusResponse:
    if user.active:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already activated")
    delete_user_tokens(db, user.id, TokenType.CONFIRM_EMAIL)
    token = issue_token(db, user.id, TokenType.CONFIRM_EMAIL)
    await mail.send_confirmation(user.email, user.username, token.body)
    return StatusResponse()


@router.get("/refresh-access-token", response_model=AuthResponse)
def refresh_access_token(
    x_refresh_token: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> AuthResponse:
    """Exchange a refresh token for a new access/refresh pair."""

    if not x_refresh_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Refresh token is broken or expired")
    user = db.get(User, decode_refresh_token(x_refresh_token))
    if user is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Refresh token is broken or expired")
    return _with_tokens(user)
