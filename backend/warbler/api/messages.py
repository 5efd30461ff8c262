"""Room message history endpoint."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from warbler.api.deps import require_user
from warbler.config import get_settings
from warbler.database import get_db
from warbler.models import User
from warbler.schemas import MessageRead, MessagesResponse
from warbler.services.messages import list_room_messages
from warbler.services.rooms import ensure_subscriber, get_room_or_404

router = APIRouter(prefix="/messages", tags=["messages"])

settings = get_settings()


@router.get("/room/{room_id}", response_model=MessagesResponse)
def read_room_messages(
    room_id: int,
    limit: int | None = Query(default=None, ge=1, le=500),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> MessagesResponse:
    """Return the latest messages of a room, newest first."""

    room = get_room_or_404(db, room_id)
    if not room.is_public:
        ensure_subscriber(room, user.id)
    messages = list_room_messages(db, room, limit or settings.message_history_default_limit)
    return MessagesResponse(messages=[MessageRead.model_validate(message) for message in messages])
