"""
Feed resolver framework: generic pagination glue over feed variants.

resolve_feed walks one request through
ARGS_PARSED -> PAGE_COMPUTED -> QUERY_BUILT -> EXECUTED -> RESPONSE_MAPPED
and only talks to the variant through the FeedVariant protocol. One extra row is
fetched as a probe for has_next_page and dropped from the output.
"""
import logging
from typing import Any, Callable, Protocol

from sqlalchemy import Row, Select, func, select
from sqlalchemy.orm import Session, aliased

from app.core.constants import FEED_RANDOM_PAGE_SIZE
from app.models.post import Post
from app.services.feed.pagination import PageGenerator, page_limit
from app.services.feed.predicates import apply_feed_where
from app.services.feed.types import ConnectionArgs, FeedConnection, FeedContext, Page

logger = logging.getLogger(__name__)

POST_ALIAS = "post"


class FeedVariant(Protocol):
    """One feed type (anonymous, configured, bookmarks, ...). Same contract; only the query differs."""

    page_generator: PageGenerator
    remove_hidden_posts: bool
    remove_banned_posts: bool

    def compute_page(self, args: ConnectionArgs) -> Page:
        """Validate connection arguments and derive the page. Raises InvalidCursorError."""
        ...

    def fetch_query_params(self, db: Session, ctx: FeedContext, page: Page) -> Any:
        """Data the query needs that is not in the database (e.g. ranked ids). None if unused."""
        ...

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: Any) -> Select:
        """Apply the feed's own filters to select(post)."""
        ...

    def apply_paging(self, ctx: FeedContext, page: Page, stmt: Select, post, params: Any) -> Select:
        """Ordering plus limit (page.limit + 1) and offset or keyset."""
        ...

    def map_row(self, row: Row) -> dict:
        """Result row -> response node."""
        ...


def post_to_node(post: Post) -> dict:
    return {
        "id": post.id,
        "short_id": post.short_id,
        "title": post.title,
        "url": post.url,
        "image": post.image,
        "source_id": post.source_id,
        "author_id": post.author_id,
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "published_at": post.published_at.isoformat() if post.published_at else None,
        "score": post.score,
        "read_time": post.read_time,
        "tags": post.tags_str.split(",") if post.tags_str else [],
    }


def build_feed_query(ctx: FeedContext, variant: FeedVariant, page: Page, params: Any = None) -> Select:
    post = aliased(Post, name=POST_ALIAS)
    stmt = variant.build_base_query(ctx, select(post), post, params)
    stmt = variant.apply_paging(ctx, page, stmt, post, params)
    return apply_feed_where(
        ctx,
        stmt,
        post,
        remove_hidden_posts=variant.remove_hidden_posts,
        remove_banned_posts=variant.remove_banned_posts,
    )


def resolve_feed(db: Session, ctx: FeedContext, variant: FeedVariant, args: ConnectionArgs) -> FeedConnection:
    page = variant.compute_page(args)
    params = variant.fetch_query_params(db, ctx, page)
    stmt = build_feed_query(ctx, variant, page, params)
    rows = db.execute(stmt).all()
    generator = variant.page_generator
    nodes = [variant.map_row(row) for row in rows[: page.limit]]
    connection = FeedConnection(
        nodes=nodes,
        cursors=[generator.node_to_cursor(page, node, i) for i, node in enumerate(nodes)],
        has_next_page=generator.has_next_page(page, len(rows)),
        has_previous_page=generator.has_previous_page(page, len(rows)),
    )
    logger.debug(
        "Resolved %s: %s nodes (limit=%s offset=%s next=%s)",
        type(variant).__name__,
        len(nodes),
        page.limit,
        page.offset,
        connection.has_next_page,
    )
    return connection


def random_posts(
    db: Session,
    ctx: FeedContext,
    query: Callable[[FeedContext, Select, Any], Select],
    first: int | None = None,
    default_page_size: int = FEED_RANDOM_PAGE_SIZE,
) -> list[dict]:
    """
    Random sample of eligible posts: exclusion policy + the feed filter, ORDER BY random().
    Flat list, no cursors; different on every call.
    """
    limit = page_limit(first, default_page_size)
    post = aliased(Post, name=POST_ALIAS)
    stmt = apply_feed_where(ctx, query(ctx, select(post), post), post)
    stmt = stmt.order_by(func.random()).limit(limit)
    return [post_to_node(row[0]) for row in db.execute(stmt).all()]
