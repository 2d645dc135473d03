"""
Admin: invalidate personalized feed caches and reset a user's feed configuration.
Cache keys live in redis (see app.services.feed.personalized); feed config in feed_tags/feed_sources.
"""
import logging

from sqlalchemy.orm import Session

from app.core.constants import FEED_CACHE_PATTERN
from app.models.feed import FeedSource, FeedTag
from app.services.feed.cache_store import FeedCacheStore
from app.services.feed.personalized import feed_cache_key, feed_time_key

logger = logging.getLogger(__name__)


def clear_feed_caches(store: FeedCacheStore, pattern: str = FEED_CACHE_PATTERN) -> int:
    """Delete every cached ranking (feeds:* by default). Next request per key refetches."""
    deleted = store.delete_by_pattern(pattern)
    logger.info("clear_feed_caches: deleted %s keys (%s)", deleted, pattern)
    return deleted


def reset_user_feed(db: Session, store: FeedCacheStore, feed_id: str, user_id: str | None = None) -> dict[str, int]:
    """
    Remove all followed/blocked tags and excluded sources of a feed, then drop the feed's
    cached ranking so the next request is ranked without the old filters.
    Returns dict of table -> deleted count.
    """
    deleted: dict[str, int] = {}
    deleted["feed_tags"] = db.query(FeedTag).filter(FeedTag.feed_id == feed_id).delete()
    deleted["feed_sources"] = db.query(FeedSource).filter(FeedSource.feed_id == feed_id).delete()
    db.commit()
    key = feed_cache_key(feed_id, user_id)
    deleted["cache_keys"] = store.delete(key, feed_time_key(key))
    logger.info("reset_user_feed: feed=%s %s", feed_id, deleted)
    return deleted
