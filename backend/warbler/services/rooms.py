"""Room membership and presence operations.

Every step commits on its own: creating a room, subscribing its members and
entering them into the presence list are independent writes.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from warbler.models import Room, User
from warbler.services.users import get_user_or_404

logger = logging.getLogger(__name__)


def get_room_or_404(db: Session, room_id: int) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


def ensure_subscriber(room: Room, user_id: int) -> None:
    if not room.has_subscriber(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not subscribed to this room",
        )


def subscribe(db: Session, room: Room, user: User) -> Room:
    if user not in room.subscribers:
        room.subscribers.append(user)
        db.commit()
    db.refresh(room)
    return room


def unsubscribe(db: Session, room: Room, user: User) -> Room:
    """Drop the user from the subscribers and the presence list; absent users are a no-op."""

    changed = False
    if user in room.subscribers:
        room.subscribers.remove(user)
        changed = True
    if user in room.online_users:
        room.online_users.remove(user)
        changed = True
    if changed:
        db.commit()
    db.refresh(room)
    return room


def create_room(
    db: Session,
    creator: User,
    name: str,
    *,
    is_public: bool,
    user_to_add: int | None = None,
) -> Room:
    """Create a room, subscribe the creator and invitee, and mark both online."""

    invitee = get_user_or_404(db, user_to_add) if user_to_add is not None else None

    room = Room(name=name, creator_id=None if is_public else creator.id)
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("User %s created %s room %s", creator.id, "public" if is_public else "private", room.id)

    members = [creator] if invitee is None or invitee.id == creator.id else [creator, invitee]
    for member in members:
        subscribe(db, room, member)
    for member in members:
        enter_room(db, room.id, member.id)
    return room


def enter_room(db: Session, room_id: int, user_id: int) -> Room:
    room = get_room_or_404(db, room_id)
    user = get_user_or_404(db, user_id)
    if not room.has_subscriber(user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to enter this room",
        )
    if user not in room.online_users:
        room.online_users.append(user)
        db.commit()
        db.refresh(room)
    return room


def leave_room(db: Session, room_id: int, user_id: int) -> Room:
    room = get_room_or_404(db, room_id)
    user = get_user_or_404(db, user_id)
    if user in room.online_users:
        room.online_users.remove(user)
        db.commit()
        db.refresh(room)
    return room
