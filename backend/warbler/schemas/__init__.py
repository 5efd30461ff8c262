"""Pydantic schemas for API payloads."""

from .auth import AuthResponse, SignInRequest, SignUpRequest
from .common import CamelModel, ErrorResponse, StatusResponse
from .content import (
    CommentRead,
    CommentResponse,
    CommentsResponse,
    RetweetCreate,
    TextPayload,
    TweetRead,
    TweetResponse,
    TweetsResponse,
)
from .files import FileRead, FileResponse, FilesResponse
from .realtime import (
    MessageDeletePayload,
    MessageEditPayload,
    MessageNewPayload,
    RoomPresencePayload,
    SocketFrame,
    UserConnectPayload,
)
from .rooms import MessageRead, MessagesResponse, RoomCreate, RoomRead, RoomResponse, RoomsResponse
from .users import UserListItem, UserRead, UserResponse, UsersResponse, UserSummary, UserUpdate

__all__ = [
    "AuthResponse",
    "CamelModel",
    "CommentRead",
    "CommentResponse",
    "CommentsResponse",
    "ErrorResponse",
    "FileRead",
    "FileResponse",
    "FilesResponse",
    "MessageDeletePayload",
    "MessageEditPayload",
    "MessageNewPayload",
    "MessageRead",
    "MessagesResponse",
    "RetweetCreate",
    "RoomCreate",
    "RoomPresencePayload",
    "RoomRead",
    "RoomResponse",
    "RoomsResponse",
    "SignInRequest",
    "SignUpRequest",
    "SocketFrame",
    "StatusResponse",
    "TextPayload",
    "TweetRead",
    "TweetResponse",
    "TweetsResponse",
    "UserConnectPayload",
    "UserListItem",
    "UserRead",
    "UserResponse",
    "UsersResponse",
    "UserSummary",
    "UserUpdate",
]
