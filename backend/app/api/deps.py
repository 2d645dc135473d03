"""
Request dependencies: viewer context and the personalized feed cache.

The redis client is process-wide (created in main.lifespan, kept on app.state);
each request wraps it in a FeedCacheStore and pairs it with a RankingClient.
"""
import redis
from fastapi import Depends, Header, Request

from app.services.feed.cache_store import FeedCacheStore
from app.services.feed.personalized import PersonalizedFeedCache
from app.services.feed.ranking_client import RankingClient
from app.services.feed.types import FeedContext


def get_feed_context(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    x_premium: str | None = Header(None, alias="X-Premium"),
) -> FeedContext:
    """Viewer identity as forwarded by the gateway (authentication happens upstream)."""
    user_id = (x_user_id or "").strip() or None
    premium = (x_premium or "").strip().lower() in ("1", "true", "yes")
    return FeedContext(user_id=user_id, premium=premium and user_id is not None)


def get_redis(request: Request) -> redis.Redis:
    return request.app.state.redis


def get_feed_cache_store(client: redis.Redis = Depends(get_redis)) -> FeedCacheStore:
    return FeedCacheStore(client)


def get_personalized_feed_cache(store: FeedCacheStore = Depends(get_feed_cache_store)) -> PersonalizedFeedCache:
    return PersonalizedFeedCache(store, RankingClient())
