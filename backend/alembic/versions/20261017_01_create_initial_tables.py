"""create initial tables

Revision ID: 20261017_01
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_01"
down_revision = None
branch_labels = None
depends_on = None


USER_ROLE = sa.Enum("user", "admin", name="user_role")
TOKEN_TYPE = sa.Enum("confirm_email", "reset_password", "change_email", name="token_type")


def _timestamps(updated_name: str = "updated_at") -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column(
            updated_name,
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
            nullable=False,
        ),
    ]


def _link_table(name: str, left: tuple[str, str], right: tuple[str, str]) -> None:
    op.create_table(
        name,
        sa.Column(left[0], sa.Integer(), sa.ForeignKey(f"{left[1]}.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(right[0], sa.Integer(), sa.ForeignKey(f"{right[1]}.id", ondelete="CASCADE"), primary_key=True),
        mysql_charset="utf8mb4",
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False),
        sa.Column("last_name", sa.String(length=128), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("avatar", sa.String(length=512), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role", USER_ROLE, nullable=False, server_default="user"),
        sa.Column("socket_id", sa.String(length=64), nullable=True),
        *_timestamps(),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_users_socket_id", "users", ["socket_id"])

    op.create_table(
        "tokens",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("body", sa.String(length=64), nullable=False),
        sa.Column("type", TOKEN_TYPE, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("lifetime_seconds", sa.Integer(), nullable=False, server_default="300"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_tokens_user_id", "tokens", ["user_id"])
    op.create_index("ix_tokens_body", "tokens", ["body"])

    _link_table("user_followers", ("user_id", "users"), ("follower_id", "users"))

    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        *_timestamps(),
        mysql_charset="utf8mb4",
    )
    _link_table("room_subscribers", ("room_id", "rooms"), ("user_id", "users"))
    _link_table("room_online_users", ("room_id", "rooms"), ("user_id", "users"))

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        *_timestamps(),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_messages_room_id", "messages", ["room_id"])

    op.create_table(
        "tweets",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column(
            "retweeted_tweet_id",
            sa.Integer(),
            sa.ForeignKey("tweets.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps("last_edited"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_tweets_author_id", "tweets", ["author_id"])
    op.create_index("ix_tweets_retweeted_tweet_id", "tweets", ["retweeted_tweet_id"])
    _link_table("tweet_likes", ("tweet_id", "tweets"), ("user_id", "users"))

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tweet_id", sa.Integer(), sa.ForeignKey("tweets.id", ondelete="CASCADE"), nullable=True),
        sa.Column("reply_to_id", sa.Integer(), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        *_timestamps("last_edited"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_comments_tweet_id", "comments", ["tweet_id"])
    op.create_index("ix_comments_reply_to_id", "comments", ["reply_to_id"])
    _link_table("comment_likes", ("comment_id", "comments"), ("user_id", "users"))

    op.create_table(
        "files",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column("path", sa.String(length=512), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("extension", sa.String(length=64), nullable=False),
        *_timestamps("last_edited"),
        mysql_charset="utf8mb4",
    )
    op.create_index("ix_files_owner_id", "files", ["owner_id"])
    op.create_index("ix_files_type", "files", ["type"])


def downgrade() -> None:
    op.drop_table("files")
    op.drop_table("comment_likes")
    op.drop_table("comments")
    op.drop_table("tweet_likes")
    op.drop_table("tweets")
    op.drop_table("messages")
    op.drop_table("room_online_users")
    op.drop_table("room_subscribers")
    op.drop_table("rooms")
    op.drop_table("user_followers")
    op.drop_table("tokens")
    op.drop_table("users")
    TOKEN_TYPE.drop(op.get_bind(), checkfirst=True)
    USER_ROLE.drop(op.get_bind(), checkfirst=True)
