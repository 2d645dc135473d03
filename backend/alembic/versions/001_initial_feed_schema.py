"""Initial feed schema: sources, posts, tags/keywords, feed configuration, user activity.

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

- posts + post_tags + post_keywords: ingested content; feeds filter through post_keywords.
- feeds + feed_tags + feed_sources: per-user feed configuration.
- views, hidden_posts, bookmarks: per-user state used by read/unread, hidden and bookmark feeds.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "sources",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("image", sa.String(512), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("private", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("image", sa.String(512), nullable=True),
        sa.Column("username", sa.String(64), nullable=True, unique=True),
        sa.Column("twitter", sa.String(64), nullable=True, unique=True),
        sa.Column("reputation", sa.Integer(), nullable=False, server_default=sa.text("10")),
    )
    op.create_table(
        "posts",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("short_id", sa.String(16), nullable=True, unique=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False, unique=True),
        sa.Column("canonical_url", sa.Text(), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("ratio", sa.Float(), nullable=True),
        sa.Column("placeholder", sa.Text(), nullable=True),
        sa.Column("source_id", sa.String(64), sa.ForeignKey("sources.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.String(64), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata_changed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tags_str", sa.Text(), nullable=True),
        sa.Column("read_time", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("toc", sa.JSON(), nullable=True),
        sa.Column("site_twitter", sa.String(64), nullable=True),
        sa.Column("creator_twitter", sa.String(64), nullable=True),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("banned", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )
    op.create_index("ix_posts_canonical_url", "posts", ["canonical_url"])
    op.create_index("ix_posts_source_id", "posts", ["source_id"])
    op.create_index("ix_posts_author_id", "posts", ["author_id"])
    op.create_index("ix_posts_created_at", "posts", ["created_at"])
    op.create_index("ix_posts_score", "posts", ["score"])

    op.create_table(
        "post_tags",
        sa.Column("post_id", sa.String(64), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag", sa.String(128), primary_key=True),
    )
    op.create_index("ix_post_tags_tag", "post_tags", ["tag"])
    op.create_table(
        "keywords",
        sa.Column("value", sa.String(128), primary_key=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("synonym", sa.String(128), nullable=True),
        sa.Column("occurrences", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_keywords_status", "keywords", ["status"])
    op.create_table(
        "post_keywords",
        sa.Column("post_id", sa.String(64), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("keyword", sa.String(128), primary_key=True),
    )
    op.create_index("ix_post_keywords_keyword", "post_keywords", ["keyword"])

    op.create_table(
        "feeds",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
    )
    op.create_index("ix_feeds_user_id", "feeds", ["user_id"])
    op.create_table(
        "feed_tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("feed_id", sa.String(64), sa.ForeignKey("feeds.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tag", sa.String(128), nullable=False),
        sa.Column("blocked", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("feed_id", "tag", name="uq_feed_tags_feed_tag"),
    )
    op.create_index("ix_feed_tags_feed_id", "feed_tags", ["feed_id"])
    op.create_table(
        "feed_sources",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("feed_id", sa.String(64), sa.ForeignKey("feeds.id", ondelete="CASCADE"), nullable=False),
        sa.Column("source_id", sa.String(64), sa.ForeignKey("sources.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("feed_id", "source_id", name="uq_feed_sources_feed_source"),
    )
    op.create_index("ix_feed_sources_feed_id", "feed_sources", ["feed_id"])

    op.create_table(
        "views",
        sa.Column("post_id", sa.String(64), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_views_user_id", "views", ["user_id"])
    op.create_table(
        "hidden_posts",
        sa.Column("post_id", sa.String(64), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.String(64), primary_key=True),
    )
    op.create_index("ix_hidden_posts_user_id", "hidden_posts", ["user_id"])
    op.create_table(
        "bookmarks",
        sa.Column("post_id", sa.String(64), sa.ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("list_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_bookmarks_user_id", "bookmarks", ["user_id"])
    op.create_index("ix_bookmarks_list_id", "bookmarks", ["list_id"])
    op.create_table(
        "comments",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("post_id", sa.String(64), sa.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_comments_post_id", "comments", ["post_id"])
    op.create_index("ix_comments_user_id", "comments", ["user_id"])


def downgrade() -> None:
    for table in (
        "comments",
        "bookmarks",
        "hidden_posts",
        "views",
        "feed_sources",
        "feed_tags",
        "feeds",
        "post_keywords",
        "keywords",
        "post_tags",
        "posts",
        "users",
        "sources",
    ):
        op.drop_table(table)
