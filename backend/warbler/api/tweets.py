"""Tweet, retweet and like endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from warbler.api.deps import Pagination, get_pagination, get_principal, require_active_user, require_user
from warbler.core.security import Principal
from warbler.database import get_db
from warbler.models import Comment, Tweet, User, comment_likes, tweet_likes, user_followers
from warbler.schemas import (
    RetweetCreate,
    StatusResponse,
    TextPayload,
    TweetRead,
    TweetResponse,
    TweetsResponse,
    UsersResponse,
    UserSummary,
)
from warbler.services.users import user_list_item

router = APIRouter(prefix="/tweets", tags=["tweets"])

logger = logging.getLogger(__name__)

LIKES_PREVIEW = 5


def _count(db: Session, *criteria) -> int:
    return db.execute(select(func.count()).select_from(Tweet).where(*criteria)).scalar_one()


def serialize_tweet(db: Session, tweet: Tweet, viewer_id: int | None) -> TweetRead:
    """Build the tweet payload, computing counters and viewer flags."""

    like_ids = tweet.like_ids
    comments_count = db.execute(
        select(func.count()).select_from(Comment).where(Comment.tweet_id == tweet.id)
    ).scalar_one()
    is_retweeted = viewer_id is not None and _count(
        db, Tweet.retweeted_tweet_id == tweet.id, Tweet.author_id == viewer_id
    ) > 0
    retweeted = tweet.retweeted_tweet
    return TweetRead(
        id=tweet.id,
        text=tweet.text,
        author=UserSummary.model_validate(tweet.author),
        retweeted_tweet=serialize_tweet(db, retweeted, viewer_id) if retweeted is not None else None,
        likes=[UserSummary.model_validate(user) for user in tweet.likes[:LIKES_PREVIEW]],
        likes_count=len(like_ids),
        retweets_count=_count(db, Tweet.retweeted_tweet_id == tweet.id),
        comments_count=comments_count,
        is_liked=viewer_id in like_ids,
        is_retweeted=is_retweeted,
        created_at=tweet.created_at,
        last_edited=tweet.last_edited,
    )


def _get_tweet_or_404(db: Session, tweet_id: int) -> Tweet:
    tweet = db.get(Tweet, tweet_id)
    if tweet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tweet not found")
    return tweet


def _owned_tweet(db: Session, tweet_id: int, user: User) -> Tweet:
    tweet = _get_tweet_or_404(db, tweet_id)
    if tweet.author_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not an owner of a tweet")
    return tweet


def _page(db: Session, stmt, pagination: Pagination, principal: Principal) -> TweetsResponse:
    stmt = (
        stmt.order_by(Tweet.created_at.desc(), Tweet.id.desc())
        .offset(pagination.skip)
        .limit(pagination.limit)
    )
    tweets = db.execute(stmt).scalars().all()
    return TweetsResponse(tweets=[serialize_tweet(db, tweet, principal.user_id) for tweet in tweets])


@router.get("/feed", response_model=TweetsResponse)
def read_feed(
    pagination: Pagination = Depends(get_pagination),
    user: User = Depends(require_user),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> TweetsResponse:
    """Tweets of the users the caller follows."""

    followed = select(user_followers.c.user_id).where(user_followers.c.follower_id == user.id)
    return _page(db, select(Tweet).where(Tweet.author_id.in_(followed)), pagination, principal)


@router.get("/author/{user_id}", response_model=TweetsResponse)
def read_author_tweets(
    user_id: int,
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> TweetsResponse:
    return _page(db, select(Tweet).where(Tweet.author_id == user_id), pagination, principal)


@router.get("/retweets/{tweet_id}", response_model=TweetsResponse)
def read_retweets(
    tweet_id: int,
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> TweetsResponse:
    _get_tweet_or_404(db, tweet_id)
    return _page(db, select(Tweet).where(Tweet.retweeted_tweet_id == tweet_id), pagination, principal)


@router.get("/likes/{tweet_id}", response_model=UsersResponse)
def read_tweet_likes(
    tweet_id: int,
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> UsersResponse:
    _get_tweet_or_404(db, tweet_id)
    stmt = (
        select(User)
        .join(tweet_likes, tweet_likes.c.user_id == User.id)
        .where(tweet_likes.c.tweet_id == tweet_id)
        .order_by(User.id)
        .offset(pagination.skip)
        .limit(pagination.limit)
    )
    return UsersResponse(users=[user_list_item(user, principal) for user in db.execute(stmt).scalars()])


@router.get("/{tweet_id}", response_model=TweetResponse)
def read_tweet(
    tweet_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> TweetResponse:
    return TweetResponse(tweet=serialize_tweet(db, _get_tweet_or_404(db, tweet_id), principal.user_id))


@router.post("", response_model=TweetResponse, status_code=status.HTTP_201_CREATED)
def create_tweet(
    payload: TextPayload,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> TweetResponse:
    tweet = Tweet(author_id=user.id, text=payload.text)
    db.add(tweet)
    db.commit()
    db.refresh(tweet)
    return TweetResponse(tweet=serialize_tweet(db, tweet, user.id))


@router.post("/retweet", response_model=TweetResponse, status_code=status.HTTP_201_CREATED)
def create_retweet(
    payload: RetweetCreate,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> TweetResponse:
    original = _get_tweet_or_404(db, payload.retweeted_tweet)
    tweet = Tweet(author_id=user.id, text=payload.text.strip(), retweeted_tweet_id=original.id)
    db.add(tweet)
    db.commit()
    db.refresh(tweet)
    return TweetResponse(tweet=serialize_tweet(db, tweet, user.id))


@router.put("/like/{tweet_id}", response_model=TweetResponse)
def like_tweet(
    tweet_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> TweetResponse:
    tweet = _get_tweet_or_404(db, tweet_id)
    if user.id in tweet.like_ids:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Already liked")
    tweet.likes.append(user)
    db.commit()
    db.refresh(tweet)
    return TweetResponse(tweet=serialize_tweet(db, tweet, user.id))


@router.put("/unlike/{tweet_id}", response_model=TweetResponse)
def unlike_tweet(
    tweet_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> TweetResponse:
    tweet = _get_tweet_or_404(db, tweet_id)
    if user.id not in tweet.like_ids:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Already unliked")
    tweet.likes.remove(user)
    db.commit()
    db.refresh(tweet)
    return TweetResponse(tweet=serialize_tweet(db, tweet, user.id))


@router.put("/{tweet_id}", response_model=TweetResponse)
def edit_tweet(
    tweet_id: int,
    payload: TextPayload,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> TweetResponse:
    tweet = _owned_tweet(db, tweet_id, user)
    tweet.text = payload.text
    db.commit()
    db.refresh(tweet)
    return TweetResponse(tweet=serialize_tweet(db, tweet, user.id))


@router.delete("/{tweet_id}", response_model=StatusResponse)
def delete_tweet(
    tweet_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> StatusResponse:
    """Delete a tweet with its comments; retweets keep their text and lose the reference."""

    tweet = _owned_tweet(db, tweet_id, user)
    comment_ids = select(Comment.id).where(Comment.tweet_id == tweet.id)
    db.execute(delete(comment_likes).where(comment_likes.c.comment_id.in_(comment_ids)))
    db.execute(delete(Comment).where(Comment.tweet_id == tweet.id))
    db.execute(
        update(Tweet).where(Tweet.retweeted_tweet_id == tweet.id).values(retweeted_tweet_id=None)
    )
    db.delete(tweet)
    db.commit()
    logger.info("User %s deleted tweet %s", user.id, tweet_id)
    return StatusResponse()
