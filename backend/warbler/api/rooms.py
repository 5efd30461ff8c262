"""Chat room management API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from warbler.api.deps import Pagination, get_pagination, get_principal, require_active_user, require_user
from warbler.core.security import Principal
from warbler.database import get_db
from warbler.models import Room, User, UserRole
from warbler.schemas import RoomCreate, RoomRead, RoomResponse, RoomsResponse, StatusResponse
from warbler.services import rooms as room_service
from warbler.services.users import get_user_or_404

router = APIRouter(prefix="/rooms", tags=["rooms"])

logger = logging.getLogger(__name__)

_NEWEST_FIRST = (Room.created_at.desc(), Room.id.desc())


def _room_response(room: Room) -> RoomResponse:
    return RoomResponse(room=RoomRead.model_validate(room))


def _forbidden() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You have no rights to do so")


@router.get("", response_model=RoomsResponse)
def list_rooms(
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
) -> RoomsResponse:
    stmt = select(Room).order_by(*_NEWEST_FIRST).offset(pagination.skip).limit(pagination.limit)
    return RoomsResponse(rooms=[RoomRead.model_validate(room) for room in db.execute(stmt).scalars()])


@router.get("/search", response_model=RoomsResponse)
def search_rooms(
    name: str = Query(..., min_length=1),
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
) -> RoomsResponse:
    stmt = (
        select(Room)
        .where(Room.name.ilike(f"%{name.strip()}%"))
        .order_by(*_NEWEST_FIRST)
        .offset(pagination.skip)
        .limit(pagination.limit)
    )
    return RoomsResponse(rooms=[RoomRead.model_validate(room) for room in db.execute(stmt).scalars()])


@router.get("/subscribed", response_model=RoomsResponse)
def list_subscribed_rooms(user: User = Depends(require_user)) -> RoomsResponse:
    rooms = sorted(user.subscribed_rooms, key=lambda room: (room.created_at, room.id), reverse=True)
    return RoomsResponse(rooms=[RoomRead.model_validate(room) for room in rooms])


@router.get("/{room_id}", response_model=RoomResponse)
def read_room(room_id: int, db: Session = Depends(get_db)) -> RoomResponse:
    return _room_response(room_service.get_room_or_404(db, room_id))


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreate,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> RoomResponse:
    """Create a room; the creator and the optional invitee are subscribed and marked online."""

    room = room_service.create_room(
        db,
        user,
        payload.room_name,
        is_public=payload.is_public,
        user_to_add=payload.user_to_add,
    )
    return _room_response(room)


@router.put("/subscribe/{room_id}", response_model=RoomResponse)
def subscribe_to_room(
    room_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> RoomResponse:
    room = room_service.get_room_or_404(db, room_id)
    if not room.is_public:
        raise _forbidden()
    return _room_response(room_service.subscribe(db, room, user))


@router.put("/unsubscribe/{room_id}", response_model=RoomResponse)
def unsubscribe_from_room(
    room_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> RoomResponse:
    room = room_service.get_room_or_404(db, room_id)
    return _room_response(room_service.unsubscribe(db, room, user))


@router.put("/{room_id}", response_model=RoomResponse)
def invite_user(
    room_id: int,
    user_id: int = Query(..., alias="userId"),
    user: User = Depends(require_active_user),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> RoomResponse:
    """Subscribe another user; private rooms accept invitations from their creator only."""

    invitee = get_user_or_404(db, user_id)
    room = room_service.get_room_or_404(db, room_id)
    if not room.is_public and not principal.is_resource_owner(room.creator_id):
        raise _forbidden()
    return _room_response(room_service.subscribe(db, room, invitee))


@router.delete("/{room_id}", response_model=StatusResponse)
def delete_room(
    room_id: int,
    user: User = Depends(require_active_user),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> StatusResponse:
    room = room_service.get_room_or_404(db, room_id)
    allowed = principal.is_in_role(UserRole.ADMIN) if room.is_public else principal.is_resource_owner(room.creator_id)
    if not allowed:
        raise _forbidden()
    db.delete(room)
    db.commit()
    logger.info("User %s deleted room %s", user.id, room_id)
    return StatusResponse()
