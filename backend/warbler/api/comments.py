"""Comment and threaded reply endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from warbler.api.deps import Pagination, get_pagination, get_principal, require_active_user
from warbler.core.security import Principal
from warbler.database import get_db
from warbler.models import Comment, Tweet, User, comment_likes
from warbler.schemas import (
    CommentRead,
    CommentResponse,
    CommentsResponse,
    StatusResponse,
    TextPayload,
    UsersResponse,
    UserSummary,
)
from warbler.services.users import user_list_item

router = APIRouter(prefix="/comments", tags=["comments"])

REPLIES_PREVIEW = 5

_OLDEST_FIRST = (Comment.created_at.asc(), Comment.id.asc())


def serialize_comment(
    db: Session, comment: Comment, viewer_id: int | None, *, with_replies: bool = True
) -> CommentRead:
    """Build the comment payload with its first replies, one level deep."""

    replies_count = db.execute(
        select(func.count()).select_from(Comment).where(Comment.reply_to_id == comment.id)
    ).scalar_one()
    replies: list[CommentRead] = []
    if with_replies and replies_count:
        stmt = (
            select(Comment)
            .where(Comment.reply_to_id == comment.id)
            .order_by(*_OLDEST_FIRST)
            .limit(REPLIES_PREVIEW)
        )
        replies = [
            serialize_comment(db, reply, viewer_id, with_replies=False)
            for reply in db.execute(stmt).scalars()
        ]
    like_ids = comment.like_ids
    return CommentRead(
        id=comment.id,
        text=comment.text,
        author=UserSummary.model_validate(comment.author),
        tweet_id=comment.tweet_id,
        reply_to_id=comment.reply_to_id,
        likes_count=len(like_ids),
        is_liked=viewer_id in like_ids,
        replies_count=replies_count,
        replies=replies,
        created_at=comment.created_at,
        last_edited=comment.last_edited,
    )


def _get_comment_or_404(db: Session, comment_id: int) -> Comment:
    comment = db.get(Comment, comment_id)
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


def _owned_comment(db: Session, comment_id: int, user: User) -> Comment:
    comment = _get_comment_or_404(db, comment_id)
    if comment.author_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not an owner of a comment")
    return comment


def _thread_ids(db: Session, root_id: int) -> list[int]:
    ids = [root_id]
    frontier = [root_id]
    while frontier:
        frontier = list(db.execute(select(Comment.id).where(Comment.reply_to_id.in_(frontier))).scalars())
        ids.extend(frontier)
    return ids


def _page(db: Session, criteria, pagination: Pagination, principal: Principal, order) -> CommentsResponse:
    stmt = select(Comment).where(criteria).order_by(*order).offset(pagination.skip).limit(pagination.limit)
    comments = db.execute(stmt).scalars().all()
    return CommentsResponse(
        comments=[serialize_comment(db, comment, principal.user_id) for comment in comments]
    )


@router.get("/tweet/{tweet_id}", response_model=CommentsResponse)
def read_tweet_comments(
    tweet_id: int,
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> CommentsResponse:
    return _page(
        db,
        Comment.tweet_id == tweet_id,
        pagination,
        principal,
        (Comment.created_at.desc(), Comment.id.desc()),
    )


@router.get("/replies/{comment_id}", response_model=CommentsResponse)
def read_replies(
    comment_id: int,
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> CommentsResponse:
    _get_comment_or_404(db, comment_id)
    return _page(db, Comment.reply_to_id == comment_id, pagination, principal, _OLDEST_FIRST)


@router.get("/likes/{comment_id}", response_model=UsersResponse)
def read_comment_likes(
    comment_id: int,
    pagination: Pagination = Depends(get_pagination),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> UsersResponse:
    _get_comment_or_404(db, comment_id)
    stmt = (
        select(User)
        .join(comment_likes, comment_likes.c.user_id == User.id)
        .where(comment_likes.c.comment_id == comment_id)
        .order_by(User.id)
        .offset(pagination.skip)
        .limit(pagination.limit)
    )
    return UsersResponse(users=[user_list_item(user, principal) for user in db.execute(stmt).scalars()])


@router.get("/{comment_id}", response_model=CommentResponse)
def read_comment(
    comment_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> CommentResponse:
    return CommentResponse(comment=serialize_comment(db, _get_comment_or_404(db, comment_id), principal.user_id))


@router.post("/reply/{comment_id}", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def reply_to_comment(
    comment_id: int,
    payload: TextPayload,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> CommentResponse:
    parent = _get_comment_or_404(db, comment_id)
    reply = Comment(author_id=user.id, reply_to_id=parent.id, text=payload.text)
    db.add(reply)
    db.commit()
    db.refresh(reply)
    return CommentResponse(comment=serialize_comment(db, reply, user.id))


@router.post("/{tweet_id}", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def comment_tweet(
    tweet_id: int,
    payload: TextPayload,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> CommentResponse:
    if db.get(Tweet, tweet_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tweet not found")
    comment = Comment(author_id=user.id, tweet_id=tweet_id, text=payload.text)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return CommentResponse(comment=serialize_comment(db, comment, user.id))


@router.patch("/like/{comment_id}", response_model=CommentResponse)
def like_comment(
    comment_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> CommentResponse:
    comment = _get_comment_or_404(db, comment_id)
    if user.id in comment.like_ids:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Already liked")
    comment.likes.append(user)
    db.commit()
    db.refresh(comment)
    return CommentResponse(comment=serialize_comment(db, comment, user.id))


@router.patch("/unlike/{comment_id}", response_model=CommentResponse)
def unlike_comment(
    comment_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> CommentResponse:
    comment = _get_comment_or_404(db, comment_id)
    if user.id not in comment.like_ids:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Already unliked")
    comment.likes.remove(user)
    db.commit()
    db.refresh(comment)
    return CommentResponse(comment=serialize_comment(db, comment, user.id))


@router.put("/{comment_id}", response_model=CommentResponse)
def edit_comment(
    comment_id: int,
    payload: TextPayload,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> CommentResponse:
    comment = _owned_comment(db, comment_id, user)
    comment.text = payload.text
    db.commit()
    db.refresh(comment)
    return CommentResponse(comment=serialize_comment(db, comment, user.id))


@router.delete("/{comment_id}", response_model=StatusResponse)
def delete_comment(
    comment_id: int,
    user: User = Depends(require_active_user),
    db: Session = Depends(get_db),
) -> StatusResponse:
    """Delete a comment together with the replies threaded under it."""

    comment = _owned_comment(db, comment_id, user)
    ids = _thread_ids(db, comment.id)
    db.execute(delete(comment_likes).where(comment_likes.c.comment_id.in_(ids)))
    db.execute(delete(Comment).where(Comment.id.in_(ids)))
    db.commit()
    return StatusResponse()
