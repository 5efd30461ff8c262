"""Schemas for tweets and comments."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from warbler.core.validators import ensure_not_empty
from warbler.schemas.common import CamelModel, StatusResponse
from warbler.schemas.users import UserSummary


class TextPayload(CamelModel):
    """Body used to create or edit a tweet or a comment."""

    text: str

    @field_validator("text")
    @classmethod
    def _text(cls, value: str) -> str:
        return ensure_not_empty(value, "text")


class RetweetCreate(CamelModel):
    retweeted_tweet: int
    text: str = ""


class TweetRead(CamelModel):
    """Tweet with counters and viewer flags computed for the current request."""

    id: int
    text: str
    author: UserSummary
    retweeted_tweet: TweetRead | None = None
    likes: list[UserSummary] = Field(default_factory=list)
    likes_count: int = 0
    retweets_count: int = 0
    comments_count: int = 0
    is_liked: bool = False
    is_retweeted: bool = False
    created_at: datetime
    last_edited: datetime


class CommentRead(CamelModel):
    """Comment with counters, viewer flag and its first replies."""

    id: int
    text: str
    author: UserSummary
    tweet_id: int | None = None
    reply_to_id: int | None = None
    likes_count: int = 0
    is_liked: bool = False
    replies_count: int = 0
    replies: list[CommentRead] = Field(default_factory=list)
    created_at: datetime
    last_edited: datetime


class TweetResponse(StatusResponse):
    tweet: TweetRead


class TweetsResponse(StatusResponse):
    tweets: list[TweetRead]


class CommentResponse(StatusResponse):
    comment: CommentRead


class CommentsResponse(StatusResponse):
    comments: list[CommentRead]
