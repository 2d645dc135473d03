"""
Feeds API: ranked, filtered and personalized post feeds.

All routes are mounted under /feeds. Connection feeds take first/after (cursor) and return
{edges, page_info}; ranked feeds also accept offset. The viewer comes from X-User-Id.
"""
import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps import get_feed_cache_store, get_feed_context, get_personalized_feed_cache
from app.core.errors import FeedError, feed_error_to_http
from app.db.session import get_db
from app.services.admin_service import clear_feed_caches
from app.services.feed import (
    AnonymousFeed,
    BookmarksFeed,
    ConfiguredFeed,
    ConnectionArgs,
    FeedContext,
    FeedFilters,
    FixedIdsFeed,
    KeywordFeed,
    PersonalizedFeed,
    Ranking,
    SourceFeed,
    TagFeed,
    random_posts,
    random_similar_query,
    random_source_query,
    random_trending_query,
    resolve_feed,
)
from app.services.feed.cache_store import FeedCacheStore
from app.services.feed.personalized import PersonalizedFeedCache
from app.services.feed.resolver import FeedVariant

router = APIRouter()
logger = logging.getLogger(__name__)


def _csv_param(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(dict.fromkeys(v.strip() for v in value.split(",") if v.strip()))


def _run(fn: Callable[[], Any]) -> Any:
    """Run feed code, mapping FeedError to the matching HTTP error."""
    try:
        return fn()
    except FeedError as e:
        logger.warning("Feed request failed: %s", e)
        raise feed_error_to_http(e) from e


def _connection(
    db: Session,
    ctx: FeedContext,
    make_variant: Callable[[], FeedVariant],
    first: int | None,
    after: str | None,
    offset: int | None = None,
) -> dict[str, Any]:
    return _run(lambda: resolve_feed(db, ctx, make_variant(), ConnectionArgs(first, after, offset)).to_dict())


def _require_user(ctx: FeedContext) -> str:
    if not ctx.user_id:
        raise HTTPException(status_code=401, detail="Login required")
    return ctx.user_id


@router.get("/anonymous")
def anonymous_feed(
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    first: int | None = Query(None),
    after: str | None = Query(None),
    offset: int | None = Query(None),
    ranking: Ranking = Query(Ranking.POPULARITY),
    sources: str | None = Query(None, description="Comma-separated source ids to include"),
    exclude_sources: str | None = Query(None, description="Comma-separated source ids to exclude"),
    tags: str | None = Query(None, description="Comma-separated tags to include"),
    blocked_tags: str | None = Query(None, description="Comma-separated tags to exclude"),
) -> dict[str, Any]:
    """Feed filtered by query-string tags/sources. Include sources wins over exclude sources."""
    filters = FeedFilters(
        include_sources=_csv_param(sources),
        exclude_sources=_csv_param(exclude_sources),
        include_tags=_csv_param(tags),
        blocked_tags=_csv_param(blocked_tags),
    )
    return _connection(db, ctx, lambda: AnonymousFeed(filters, ranking), first, after, offset)


@router.get("/personalized")
def personalized_feed(
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    cache: PersonalizedFeedCache = Depends(get_personalized_feed_cache),
    first: int | None = Query(None),
    after: str | None = Query(None),
    offset: int | None = Query(None),
    feed_id: str | None = Query(None, description="Feed to personalize; defaults to the viewer's own feed"),
) -> dict[str, Any]:
    """Ranked by the ranking service, served from the feed cache when fresh."""
    feed_id = feed_id or ctx.user_id
    return _connection(db, ctx, lambda: PersonalizedFeed(cache, feed_id), first, after, offset)


@router.get("/my")
def my_feed(
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    first: int | None = Query(None),
    after: str | None = Query(None),
    offset: int | None = Query(None),
    ranking: Ranking = Query(Ranking.POPULARITY),
    unread_only: bool = Query(False),
) -> dict[str, Any]:
    """The viewer's configured feed (followed/blocked tags, excluded sources)."""
    user_id = _require_user(ctx)
    return _connection(db, ctx, lambda: ConfiguredFeed(user_id, unread_only, ranking), first, after, offset)


@router.get("/bookmarks")
def bookmarks_feed(
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    first: int | None = Query(None),
    after: str | None = Query(None),
    unread_only: bool = Query(False),
    list_id: str | None = Query(None),
    query: str | None = Query(None, max_length=100),
) -> dict[str, Any]:
    _require_user(ctx)
    return _connection(db, ctx, lambda: BookmarksFeed(unread_only, list_id, query), first, after)


@router.get("/source/{source_id}")
def source_feed(
    source_id: str,
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    first: int | None = Query(None),
    after: str | None = Query(None),
    ranking: Ranking = Query(Ranking.TIME),
) -> dict[str, Any]:
    return _connection(db, ctx, lambda: SourceFeed(source_id, ranking), first, after)


@router.get("/tag/{tag}")
def tag_feed(
    tag: str,
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    first: int | None = Query(None),
    after: str | None = Query(None),
    ranking: Ranking = Query(Ranking.TIME),
) -> dict[str, Any]:
    return _connection(db, ctx, lambda: TagFeed(tag, ranking), first, after)


@router.get("/keyword/{keyword}")
def keyword_feed(
    keyword: str,
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    first: int | None = Query(None),
    after: str | None = Query(None),
    ranking: Ranking = Query(Ranking.TIME),
) -> dict[str, Any]:
    return _connection(db, ctx, lambda: KeywordFeed(keyword, ranking), first, after)


@router.get("/ids")
def fixed_ids_feed(
    ids: str = Query(..., description="Comma-separated post ids, in display order"),
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    first: int | None = Query(None),
    after: str | None = Query(None),
    offset: int | None = Query(None),
) -> dict[str, Any]:
    return _connection(db, ctx, lambda: FixedIdsFeed(list(_csv_param(ids))), first, after, offset)


@router.get("/random")
def random_feed(
    db: Session = Depends(get_db),
    ctx: FeedContext = Depends(get_feed_context),
    first: int | None = Query(None),
    tags: str | None = Query(None, description="Comma-separated tags: random similar posts"),
    source_id: str | None = Query(None, description="Random posts from one source"),
) -> dict[str, Any]:
    """Random eligible posts; not paginated, different on each call."""
    if source_id:
        query = random_source_query(source_id)
    elif tags:
        query = random_similar_query(list(_csv_param(tags)))
    else:
        query = random_trending_query
    return {"posts": _run(lambda: random_posts(db, ctx, query, first))}


@router.delete("/cache")
def clear_cache(store: FeedCacheStore = Depends(get_feed_cache_store)) -> dict[str, Any]:
    """Invalidate all cached personalized rankings (feeds:*)."""
    deleted = _run(lambda: clear_feed_caches(store))
    return {"ok": True, "deleted": deleted}
