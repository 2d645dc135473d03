"""
Feeds: ranked/personalized post lists and the query layer behind them.

- cache_store: redis sorted sets holding ranked post ids per feed key.
- ranking_client: the external ranking service (feed.json).
- personalized: cache-or-fetch with a staleness clock.
- predicates / builders: SQL filters and the feed variants built from them.
- resolver / pagination: generic cursor pagination over any variant.
"""

from app.services.feed.builders import (
    AnonymousFeed,
    BookmarksFeed,
    ConfiguredFeed,
    FixedIdsFeed,
    KeywordFeed,
    PersonalizedFeed,
    SourceFeed,
    TagFeed,
    random_similar_query,
    random_source_query,
    random_trending_query,
)
from app.services.feed.cache_store import FeedCacheStore
from app.services.feed.personalized import (
    PersonalizedFeedCache,
    feed_cache_key,
    feed_to_filters,
    generate_personalized_feed,
)
from app.services.feed.ranking_client import RankingClient, RankingConfig
from app.services.feed.resolver import random_posts, resolve_feed
from app.services.feed.types import ConnectionArgs, FeedContext, FeedFilters, FeedSpec, Ranking

__all__ = [
    "AnonymousFeed",
    "BookmarksFeed",
    "ConfiguredFeed",
    "ConnectionArgs",
    "FeedCacheStore",
    "FeedContext",
    "FeedFilters",
    "FeedSpec",
    "FixedIdsFeed",
    "KeywordFeed",
    "PersonalizedFeed",
    "PersonalizedFeedCache",
    "RankingClient",
    "RankingConfig",
    "Ranking",
    "SourceFeed",
    "TagFeed",
    "feed_cache_key",
    "feed_to_filters",
    "generate_personalized_feed",
    "random_posts",
    "random_similar_query",
    "random_source_query",
    "random_trending_query",
    "resolve_feed",
]
