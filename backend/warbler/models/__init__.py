"""Database models package."""

from .base import Base
from .chat import Message, Room, room_online_users, room_subscribers
from .content import Comment, Tweet, comment_likes, tweet_likes
from .enums import FileType, TokenType, UserRole
from .files import File
from .users import Token, User, user_followers

__all__ = [
    "Base",
    "User",
    "Token",
    "Room",
    "Message",
    "Tweet",
    "Comment",
    "File",
    "user_followers",
    "room_subscribers",
    "room_online_users",
    "tweet_likes",
    "comment_likes",
    "FileType",
    "TokenType",
    "UserRole",
]
