from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warbler.models.base import Base
from warbler.models.users import User

room_subscribers = Table(
    "room_subscribers",
    Base.metadata,
    Column("room_id", ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

room_online_users = Table(
    "room_online_users",
    Base.metadata,
    Column("room_id", ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)
"""Presence list: users currently connected inside a room."""


class Room(Base):
    """Chat room. Rooms without a creator are public."""

    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    creator_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    creator: Mapped[User | None] = relationship(back_populates="created_rooms")
    subscribers: Mapped[list[User]] = relationship(
        secondary=room_subscribers, back_populates="subscribed_rooms", order_by=User.id
    )
    online_users: Mapped[list[User]] = relationship(
        secondary=room_online_users, order_by=User.id
    )
    messages: Mapped[list["Message"]] = relationship(
        back_populates="room", cascade="all, delete-orphan"
    )

    @property
    def is_public(self) -> bool:
        return self.creator_id is None

    @property
    def subscriber_ids(self) -> list[int]:
        return [user.id for user in self.subscribers]

    @property
    def users_online(self) -> list[int]:
        return [user.id for user in self.online_users]

    def is_creator(self, user_id: int) -> bool:
        return self.creator_id is not None and self.creator_id == user_id

    def has_subscriber(self, user_id: int) -> bool:
        return user_id in self.subscriber_ids


class Message(Base):
    """Chat message posted to a room."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(primary_key=True)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    room_id: Mapped[int] = mapped_column(
        ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    author: Mapped[User] = relationship(back_populates="messages")
    room: Mapped[Room] = relationship(back_populates="messages")
