"""
Personalized feed cache: serve ranked post ids from redis, fetching from the ranking
service only when the cache cannot answer the requested page.

Fetch rules (per cache key):
- no timestamp yet (cold cache);
- first page (offset 0) requested and the timestamp is older than the staleness window;
- the requested range reaches past what is cached, whatever its age.

A head fetch (cold cache or offset 0) ranks the returned ids ahead of everything already
cached; older entries stay behind them. A tail fetch only appends ids not cached yet.
Concurrent requests for one key may both fetch; writes are idempotent per id, the
timestamp is last-write-wins. No locks.
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.orm import Session

from app.core.constants import (
    FEED_CACHE_ANONYMOUS,
    FEED_CACHE_PATTERN,
    FEED_CACHE_PREFIX,
    FEED_CACHE_STALE_MINUTES,
    FEED_CACHE_TIME_SUFFIX,
    FEED_FRESH_PAGE_RATIO,
)
from app.core.errors import CacheUnavailableError
from app.models.feed import FeedSource, FeedTag
from app.services.feed.cache_store import FeedCacheStore
from app.services.feed.ranking_client import RankingClient
from app.services.feed.types import FeedFilters, FeedSpec

logger = logging.getLogger(__name__)


def feed_cache_key(feed_id: str | None = None, user_id: str | None = None) -> str:
    """feeds:{feed_id|anonymous}[:{user_id}]"""
    key = f"{FEED_CACHE_PREFIX}:{feed_id or FEED_CACHE_ANONYMOUS}"
    if user_id:
        key = f"{key}:{user_id}"
    return key


def feed_time_key(key: str) -> str:
    return f"{key}:{FEED_CACHE_TIME_SUFFIX}"


def feed_to_filters(db: Session, feed_id: str) -> FeedFilters:
    """Read a feed's tag and source configuration into FeedFilters (row order preserved)."""
    tags = db.query(FeedTag).filter(FeedTag.feed_id == feed_id).order_by(FeedTag.id).all()
    sources = db.query(FeedSource.source_id).filter(FeedSource.feed_id == feed_id).order_by(FeedSource.id).all()
    return FeedFilters(
        include_tags=tuple(t.tag for t in tags if not t.blocked),
        blocked_tags=tuple(t.tag for t in tags if t.blocked),
        exclude_sources=tuple(s.source_id for s in sources),
    )


def _parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        ts = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparsable feed cache timestamp %r", raw)
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class PersonalizedFeedCache:
    """Cache-or-fetch over a FeedCacheStore and a RankingClient, both injected by the caller."""

    def __init__(
        self,
        store: FeedCacheStore,
        ranking: RankingClient,
        *,
        stale_after: timedelta = timedelta(minutes=FEED_CACHE_STALE_MINUTES),
        fresh_page_ratio: float = FEED_FRESH_PAGE_RATIO,
    ) -> None:
        self._store = store
        self._ranking = ranking
        self._stale_after = stale_after
        self._fresh_page_ratio = fresh_page_ratio

    def fresh_page_size(self, window: int) -> int:
        """How many of the top ids the ranking service must recompute. At least 1."""
        return max(1, math.ceil(window * self._fresh_page_ratio))

    def is_stale(self, last_updated: datetime | None, now: datetime | None = None) -> bool:
        if last_updated is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now - last_updated > self._stale_after

    def should_fetch(self, spec: FeedSpec, last_updated: datetime | None, cached_count: int) -> bool:
        if last_updated is None:
            return True
        if spec.offset == 0 and self.is_stale(last_updated):
            return True
        return spec.offset + spec.page_size > cached_count

    def get_feed(self, spec: FeedSpec, load_filters: Callable[[], FeedFilters | None] | None = None) -> list[str]:
        """
        Post ids for [offset, offset + page_size), best first. Fewer at the tail of the ranking.
        load_filters is only called when the ranking service must be queried.
        Raises UpstreamFetchError when a required fetch fails, CacheUnavailableError when the
        cache cannot be read.
        """
        if spec.page_size < 1:
            return []
        key = feed_cache_key(spec.feed_id, spec.user_id)
        last_updated = _parse_timestamp(self._store.get_value(feed_time_key(key)))
        cached_count = self._store.count(key) if last_updated is not None else 0
        if not self.should_fetch(spec, last_updated, cached_count):
            return self._store.get_range(key, spec.offset, spec.offset + spec.page_size - 1)

        # The ranking service has no offset: ask for a window that reaches the requested page.
        window = FeedSpec(
            page_size=spec.offset + spec.page_size,
            offset=0,
            user_id=spec.user_id,
            feed_id=spec.feed_id,
        )
        filters = load_filters() if load_filters else None
        ids = self._ranking.fetch_ranking(window, self.fresh_page_size(window.page_size), filters)
        head = last_updated is None or spec.offset == 0
        logger.info(
            "Fetched %s ranked ids for %s (%s fetch, offset=%s, cached=%s)",
            len(ids),
            key,
            "head" if head else "tail",
            spec.offset,
            cached_count,
        )
        try:
            self._merge(key, ids, head=head)
            self._store.set_value(feed_time_key(key), datetime.now(timezone.utc).isoformat())
            return self._store.get_range(key, spec.offset, spec.offset + spec.page_size - 1)
        except CacheUnavailableError as e:
            # Fetched ids are ranked from the top, so the page can be served from them once.
            logger.warning("Feed cache write failed for %s, serving fetched page uncached: %s", key, e)
            return ids[spec.offset : spec.offset + spec.page_size]

    def _merge(self, key: str, ids: list[str], *, head: bool) -> None:
        if not ids:
            return
        bounds = self._store.score_bounds(key)
        if head:
            # Rank ahead of the current best entry; ids already cached move up, the rest stay behind.
            start = bounds[0] - len(ids) if bounds else 0
            self._store.add_scored(key, ((post_id, start + i) for i, post_id in enumerate(ids)))
            return
        cached = set(self._store.get_range(key, 0, -1))
        new_ids = [post_id for post_id in dict.fromkeys(ids) if post_id not in cached]
        start = bounds[1] + 1 if bounds else 0
        self._store.add_scored(key, ((post_id, start + i) for i, post_id in enumerate(new_ids)), only_new=True)

    def clear(self, pattern: str = FEED_CACHE_PATTERN) -> int:
        """Bulk invalidation; the next request for any cleared key fetches from scratch."""
        return self._store.delete_by_pattern(pattern)


def generate_personalized_feed(
    db: Session,
    cache: PersonalizedFeedCache,
    page_size: int,
    offset: int,
    user_id: str | None = None,
    feed_id: str | None = None,
) -> list[str]:
    """Ranked post ids for a user (or anonymous visitor), with the feed's filters loaded lazily."""
    spec = FeedSpec(page_size=page_size, offset=offset, user_id=user_id, feed_id=feed_id)
    load_filters = (lambda: feed_to_filters(db, feed_id)) if feed_id else None
    return cache.get_feed(spec, load_filters)
