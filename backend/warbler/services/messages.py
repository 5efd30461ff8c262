"""Room message persistence used by the history endpoint and the socket gateway."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from warbler.models import Message, Room
from warbler.schemas import MessageRead
from warbler.services.rooms import ensure_subscriber, get_room_or_404
from warbler.services.users import get_user_or_404


def serialize_message(message: Message) -> dict[str, Any]:
    return MessageRead.model_validate(message).model_dump(mode="json", by_alias=True)


def list_room_messages(db: Session, room: Room, limit: int) -> list[Message]:
    stmt = (
        select(Message)
        .where(Message.room_id == room.id)
        .options(selectinload(Message.author))
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars())


def _get_room_message(db: Session, room_id: int, message_id: int) -> Message:
    message = db.get(Message, message_id)
    if message is None or message.room_id != room_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")
    return message


def _member_room(db: Session, room_id: int, user_id: int) -> Room:
    room = get_room_or_404(db, room_id)
    user = get_user_or_404(db, user_id)
    ensure_subscriber(room, user.id)
    return room


def create_message(db: Session, room_id: int, user_id: int, body: str) -> Message:
    room = _member_room(db, room_id, user_id)
    message = Message(room_id=room.id, author_id=user_id, body=body)
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def delete_message(db: Session, room_id: int, user_id: int, message_id: int) -> dict[str, Any]:
    """Delete a message and return its last serialized state."""

    _member_room(db, room_id, user_id)
    message = _get_room_message(db, room_id, message_id)
    payload = serialize_message(message)
    db.delete(message)
    db.commit()
    return payload


def edit_message(db: Session, room_id: int, user_id: int, message_id: int, body: str) -> Message:
    _member_room(db, room_id, user_id)
    message = _get_room_message(db, room_id, message_id)
    if message.author_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to edit this message",
        )
    message.body = body
    db.commit()
    db.refresh(message)
    return message
