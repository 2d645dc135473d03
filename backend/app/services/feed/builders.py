"""
Feed variants and their base queries.

Each variant implements the FeedVariant protocol from resolver.py. Ranked feeds
(POPULARITY, personalized, fixed ids) use offset cursors; TIME feeds use keyset
cursors on created_at. Filters come from predicates.py; nothing here writes.
"""
import logging
from typing import Any

from sqlalchemy import Row, Select, and_, func, or_
from sqlalchemy.orm import Session

from app.models.bookmark import Bookmark
from app.services.feed.pagination import OffsetPageGenerator, PageGenerator, TimePageGenerator
from app.services.feed.personalized import PersonalizedFeedCache, feed_to_filters, generate_personalized_feed
from app.services.feed.predicates import (
    is_safe_id,
    never,
    order_by_fixed_ids,
    validate_fixed_ids,
    where_fixed_ids,
    where_keyword,
    where_not_sources,
    where_not_tags,
    where_sources,
    where_tags,
    where_unread,
)
from app.services.feed.resolver import post_to_node
from app.services.feed.types import ConnectionArgs, FeedContext, FeedFilters, Page, Ranking

logger = logging.getLogger(__name__)


# --- Filter builders (pure: Select in, Select out) ---


def anonymous_feed_builder(filters: FeedFilters | None, stmt: Select, post) -> Select:
    """Source include wins over source exclude; followed and blocked tags each apply when set."""
    if not filters:
        return stmt
    if filters.include_sources:
        stmt = stmt.where(where_sources(filters.include_sources, post))
    elif filters.exclude_sources:
        stmt = stmt.where(where_not_sources(filters.exclude_sources, post))
    if filters.include_tags:
        stmt = stmt.where(where_tags(filters.include_tags, post))
    if filters.blocked_tags:
        stmt = stmt.where(where_not_tags(filters.blocked_tags, post))
    return stmt


def configured_feed_builder(
    ctx: FeedContext, filters: FeedFilters | None, unread_only: bool, stmt: Select, post
) -> Select:
    stmt = anonymous_feed_builder(filters, stmt, post)
    if unread_only and ctx.user_id:
        stmt = stmt.where(where_unread(ctx.user_id, post))
    return stmt


def source_feed_builder(source_id: str, stmt: Select, post) -> Select:
    return stmt.where(post.source_id == source_id)


def tag_feed_builder(tag: str, stmt: Select, post) -> Select:
    return stmt.where(where_tags([tag], post))


def keyword_feed_builder(keyword: str, stmt: Select, post) -> Select:
    return stmt.where(where_keyword(keyword, post))


def fixed_ids_feed_builder(ids: list[str], stmt: Select, post) -> Select:
    return stmt.where(where_fixed_ids(ids, post)).order_by(order_by_fixed_ids(ids, post))


def after_time_cursor(column, post, page: Page):
    """Rows after the cursor in (column desc, id desc) order."""
    return or_(column < page.timestamp, and_(column == page.timestamp, post.id < page.after_id))


# --- Variants ---


class BaseFeed:
    """Defaults shared by every variant: no params, global exclusion on, post rows."""

    page_generator: PageGenerator = OffsetPageGenerator()
    remove_hidden_posts = True
    remove_banned_posts = True

    def compute_page(self, args: ConnectionArgs) -> Page:
        return self.page_generator.connection_args_to_page(args)

    def fetch_query_params(self, db: Session, ctx: FeedContext, page: Page) -> Any:
        return None

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: Any) -> Select:
        return stmt

    def apply_paging(self, ctx: FeedContext, page: Page, stmt: Select, post, params: Any) -> Select:
        return stmt.limit(page.limit + 1).offset(page.offset)

    def map_row(self, row: Row) -> dict:
        return post_to_node(row[0])


class RankedFeed(BaseFeed):
    """POPULARITY: score desc with offset cursors. TIME: created_at desc with keyset cursors."""

    def __init__(self, ranking: Ranking = Ranking.POPULARITY) -> None:
        self.ranking = Ranking(ranking)
        self.page_generator = TimePageGenerator() if self.ranking == Ranking.TIME else OffsetPageGenerator()

    def apply_paging(self, ctx: FeedContext, page: Page, stmt: Select, post, params: Any) -> Select:
        if self.ranking == Ranking.TIME:
            if page.timestamp is not None:
                stmt = stmt.where(after_time_cursor(post.created_at, post, page))
            return stmt.order_by(post.created_at.desc(), post.id.desc()).limit(page.limit + 1)
        return stmt.order_by(post.score.desc(), post.id.desc()).limit(page.limit + 1).offset(page.offset)


class AnonymousFeed(RankedFeed):
    def __init__(self, filters: FeedFilters | None = None, ranking: Ranking = Ranking.POPULARITY) -> None:
        super().__init__(ranking)
        self.filters = filters

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: Any) -> Select:
        return anonymous_feed_builder(self.filters, stmt, post)


class ConfiguredFeed(RankedFeed):
    """A user's saved feed; filters are read from feed_tags/feed_sources per request."""

    def __init__(self, feed_id: str, unread_only: bool = False, ranking: Ranking = Ranking.POPULARITY) -> None:
        super().__init__(ranking)
        self.feed_id = feed_id
        self.unread_only = unread_only

    def fetch_query_params(self, db: Session, ctx: FeedContext, page: Page) -> FeedFilters:
        return feed_to_filters(db, self.feed_id)

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: FeedFilters) -> Select:
        return configured_feed_builder(ctx, params, self.unread_only, stmt, post)


class SourceFeed(RankedFeed):
    def __init__(self, source_id: str, ranking: Ranking = Ranking.TIME) -> None:
        super().__init__(ranking)
        self.source_id = source_id

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: Any) -> Select:
        return source_feed_builder(self.source_id, stmt, post)


class TagFeed(RankedFeed):
    def __init__(self, tag: str, ranking: Ranking = Ranking.TIME) -> None:
        super().__init__(ranking)
        self.tag = tag

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: Any) -> Select:
        return tag_feed_builder(self.tag, stmt, post)


class KeywordFeed(RankedFeed):
    def __init__(self, keyword: str, ranking: Ranking = Ranking.TIME) -> None:
        super().__init__(ranking)
        self.keyword = keyword

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: Any) -> Select:
        return keyword_feed_builder(self.keyword, stmt, post)


class FixedIdsFeed(BaseFeed):
    """Posts in the given order. Ids are validated when the feed is created."""

    def __init__(self, ids: list[str]) -> None:
        self.page_generator = OffsetPageGenerator()
        self.ids = validate_fixed_ids(ids)

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: Any) -> Select:
        return fixed_ids_feed_builder(self.ids, stmt, post)


class PersonalizedFeed(BaseFeed):
    """
    Ranked ids from the personalized feed cache, then the posts in rank order.
    The ids are already the requested slice (plus one probe), so no SQL offset.
    """

    def __init__(self, cache: PersonalizedFeedCache, feed_id: str | None = None) -> None:
        self.page_generator = OffsetPageGenerator()
        self.cache = cache
        self.feed_id = feed_id

    def fetch_query_params(self, db: Session, ctx: FeedContext, page: Page) -> list[str]:
        ids = generate_personalized_feed(db, self.cache, page.limit + 1, page.offset, ctx.user_id, self.feed_id)
        unsafe = [post_id for post_id in ids if not is_safe_id(post_id)]
        if unsafe:
            logger.warning("Dropping %s malformed ranked ids for feed %s: %r", len(unsafe), self.feed_id, unsafe[:5])
        return [post_id for post_id in ids if is_safe_id(post_id)]

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: list[str]) -> Select:
        return fixed_ids_feed_builder(params, stmt, post)

    def apply_paging(self, ctx: FeedContext, page: Page, stmt: Select, post, params: Any) -> Select:
        return stmt.limit(page.limit + 1)


class BookmarksFeed(BaseFeed):
    """The viewer's bookmarks, newest bookmark first. Hidden posts stay visible here."""

    remove_hidden_posts = False

    def __init__(self, unread_only: bool = False, list_id: str | None = None, query: str | None = None) -> None:
        self.page_generator = TimePageGenerator(cursor_field="bookmarked_at")
        self.unread_only = unread_only
        self.list_id = list_id
        self.query = query

    def build_base_query(self, ctx: FeedContext, stmt: Select, post, params: Any) -> Select:
        if not ctx.user_id:
            return stmt.where(never())
        stmt = stmt.join(Bookmark, and_(Bookmark.post_id == post.id, Bookmark.user_id == ctx.user_id)).add_columns(
            Bookmark.created_at.label("bookmarked_at")
        )
        if self.unread_only:
            stmt = stmt.where(where_unread(ctx.user_id, post))
        if self.list_id and ctx.premium:
            stmt = stmt.where(Bookmark.list_id == self.list_id)
        if self.query:
            stmt = stmt.where(func.lower(post.title).contains(self.query.strip().lower(), autoescape=True))
        return stmt

    def apply_paging(self, ctx: FeedContext, page: Page, stmt: Select, post, params: Any) -> Select:
        if not ctx.user_id:
            # No bookmarks join without a viewer
            return stmt.limit(page.limit + 1)
        if page.timestamp is not None:
            stmt = stmt.where(after_time_cursor(Bookmark.created_at, post, page))
        return stmt.order_by(Bookmark.created_at.desc(), post.id.desc()).limit(page.limit + 1)

    def map_row(self, row: Row) -> dict:
        node = post_to_node(row[0])
        bookmarked_at = row.bookmarked_at if len(row) > 1 else None
        node["bookmarked_at"] = bookmarked_at.isoformat() if bookmarked_at else None
        return node


# --- Random feed queries (for resolver.random_posts) ---


def random_trending_query(ctx: FeedContext, stmt: Select, post) -> Select:
    return stmt.where(post.score > 0)


def random_similar_query(tags: list[str]):
    def query(ctx: FeedContext, stmt: Select, post) -> Select:
        return stmt.where(where_tags(tags, post)) if tags else stmt

    return query


def random_source_query(source_id: str):
    def query(ctx: FeedContext, stmt: Select, post) -> Select:
        return source_feed_builder(source_id, stmt, post)

    return query
