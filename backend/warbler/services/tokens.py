"""Single-use, typed and expiring tokens persisted in the database."""

from __future__ import annotations

from uuid import uuid4

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from warbler.config import get_settings
from warbler.models import Token, TokenType

settings = get_settings()


def issue_token(db: Session, user_id: int, token_type: TokenType) -> Token:
    """Create and commit a new token for ``user_id``."""

    token = Token(
        user_id=user_id,
        body=uuid4().hex,
        type=token_type,
        lifetime_seconds=settings.confirm_token_lifetime_seconds,
    )
    db.add(token)
    db.commit()
    db.refresh(token)
    return token


def redeem_token(db: Session, body: str, token_type: TokenType) -> int:
    """Consume a token and return the id of the user it belongs to.

    Unknown or already used tokens are 404; expired tokens are 417 and stay in
    place until the user asks for a new one.
    """

    token = db.execute(
        select(Token).where(Token.body == body, Token.type == token_type)
    ).scalars().first()
    if token is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Token not found")
    if token.is_expired():
        raise HTTPException(status_code=status.HTTP_417_EXPECTATION_FAILED, detail="Token is broken or expired")

    user_id = token.user_id
    db.delete(token)
    db.commit()
    return user_id


def delete_user_tokens(db: Session, user_id: int, token_type: TokenType | None = None) -> None:
    stmt = delete(Token).where(Token.user_id == user_id)
    if token_type is not None:
        stmt = stmt.where(Token.type == token_type)
    db.execute(stmt)
    db.commit()
