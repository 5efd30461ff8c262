from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    String,
    Table,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warbler.models.base import Base
from warbler.models.enums import TokenType, UserRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


user_followers = Table(
    "user_followers",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("follower_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)
"""Adjacency list: ``follower_id`` follows ``user_id``."""


class User(Base):
    """Application user."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(512))
    active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(
            UserRole,
            name="user_role",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        default=UserRole.USER,
        nullable=False,
    )
    socket_id: Mapped[str | None] = mapped_column(String(64), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    followers: Mapped[list["User"]] = relationship(
        secondary=user_followers,
        primaryjoin=lambda: User.id == user_followers.c.user_id,
        secondaryjoin=lambda: User.id == user_followers.c.follower_id,
        back_populates="following",
    )
    following: Mapped[list["User"]] = relationship(
        secondary=user_followers,
        primaryjoin=lambda: User.id == user_followers.c.follower_id,
        secondaryjoin=lambda: User.id == user_followers.c.user_id,
        back_populates="followers",
    )
    subscribed_rooms: Mapped[list["Room"]] = relationship(
        secondary="room_subscribers", back_populates="subscribers"
    )
    created_rooms: Mapped[list["Room"]] = relationship(
        back_populates="creator", cascade="all"
    )
    tokens: Mapped[list["Token"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    tweets: Mapped[list["Tweet"]] = relationship(
        back_populates="author", cascade="all, delete-orphan"
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="author", cascade="all, delete-orphan"
    )
    messages: Mapped[list["Message"]] = relationship(
        back_populates="author", cascade="all, delete-orphan"
    )
    files: Mapped[list["File"]] = relationship(
        back_populates="owner", cascade="all, delete-orphan"
    )

    @property
    def follower_ids(self) -> list[int]:
        return [follower.id for follower in self.followers]

    @property
    def subscribed_room_ids(self) -> list[int]:
        return [room.id for room in self.subscribed_rooms]


class Token(Base):
    """Single-use, typed and expiring token such as an email confirmation link."""

    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    body: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[TokenType] = mapped_column(
        SAEnum(
            TokenType,
            name="token_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    lifetime_seconds: Mapped[int] = mapped_column(Integer, default=300, nullable=False)

    user: Mapped[User] = relationship(back_populates="tokens")

    @property
    def expires_at(self) -> datetime:
        created = self.created_at
        if created.tzinfo is None:
            # SQLite drops the offset; values are always written in UTC.
            created = created.replace(tzinfo=timezone.utc)
        return created + timedelta(seconds=self.lifetime_seconds)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or _utcnow()) > self.expires_at
