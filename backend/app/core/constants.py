"""
Centralized constants for feeds and workers (Encapsulate What Changes).

Change cache key layout or worker subscriptions here instead of scattering literals.
Tunables (staleness, page sizes) come from feed_config (env-driven).
"""
from app.core.feed_config import (
    FEED_CACHE_STALE_MINUTES,
    FEED_DEFAULT_PAGE_SIZE,
    FEED_FRESH_PAGE_RATIO,
    FEED_MAX_PAGE_SIZE,
    FEED_RANDOM_PAGE_SIZE,
)

# Personalized feed cache keys: feeds:{feed_id|anonymous}[:{user_id}] and {key}:time
FEED_CACHE_PREFIX = "feeds"
FEED_CACHE_ANONYMOUS = "anonymous"
FEED_CACHE_TIME_SUFFIX = "time"
FEED_CACHE_PATTERN = f"{FEED_CACHE_PREFIX}:*"

# Ranking service endpoint path (appended to RANKING_SERVICE_URL)
RANKING_FEED_PATH = "/feed.json"

# Fixed-id feeds: placeholder so an empty id list still yields a valid IN (...) clause
NO_SUCH_ID = "nosuchid"

# Worker subscriptions (must match the queue subscription names)
NEW_POST_SUBSCRIPTION = "add-posts-v2"
COMMENT_UPVOTED_REP_SUBSCRIPTION = "comment-upvoted-rep"

# Posts by these creator twitter handles are dropped at ingestion (lowercase, no @)
BANNED_AUTHORS = frozenset({"newgendeveloper"})
