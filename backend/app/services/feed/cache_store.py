"""
Redis-backed store for personalized feed rankings.

Each cached feed is a sorted set (member = post id, score = rank) plus a plain
string key holding the ISO timestamp of the last ranking fetch. Every redis
failure surfaces as CacheUnavailableError so callers never mistake an outage
for an empty feed.
"""
import logging
from typing import Iterable

import redis

from app.core.errors import CacheUnavailableError

logger = logging.getLogger(__name__)

# Keys deleted per DEL call while clearing by pattern
_DELETE_BATCH_SIZE = 500


class FeedCacheStore:
    """Thin wrapper over a shared redis client. The client's lifecycle belongs to the caller."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    def get_range(self, key: str, start: int, end: int) -> list[str]:
        """Members ranked start..end (inclusive, like ZRANGE), best first."""
        try:
            return list(self._client.zrange(key, start, end))
        except redis.RedisError as e:
            raise CacheUnavailableError(f"zrange {key} failed: {e}") from e

    def count(self, key: str) -> int:
        try:
            return int(self._client.zcard(key))
        except redis.RedisError as e:
            raise CacheUnavailableError(f"zcard {key} failed: {e}") from e

    def score_bounds(self, key: str) -> tuple[float, float] | None:
        """(lowest, highest) rank stored under key, or None when the set is empty."""
        try:
            pipe = self._client.pipeline(transaction=False)
            pipe.zrange(key, 0, 0, withscores=True)
            pipe.zrange(key, -1, -1, withscores=True)
            first, last = pipe.execute()
        except redis.RedisError as e:
            raise CacheUnavailableError(f"score bounds {key} failed: {e}") from e
        if not first or not last:
            return None
        return float(first[0][1]), float(last[0][1])

    def add_scored(self, key: str, members: Iterable[tuple[str, float]], *, only_new: bool = False) -> int:
        """
        Write (member, score) pairs in one pipeline. Replaying the same pairs is a no-op.
        only_new=True (ZADD NX) never moves a member that is already ranked.
        Returns the number of members added.
        """
        mapping = {member: score for member, score in members}
        if not mapping:
            return 0
        try:
            pipe = self._client.pipeline(transaction=False)
            pipe.zadd(key, mapping, nx=only_new)
            (added,) = pipe.execute()
        except redis.RedisError as e:
            raise CacheUnavailableError(f"zadd {key} failed: {e}") from e
        return int(added)

    def set_value(self, key: str, value: str) -> None:
        try:
            self._client.set(key, value)
        except redis.RedisError as e:
            raise CacheUnavailableError(f"set {key} failed: {e}") from e

    def get_value(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as e:
            raise CacheUnavailableError(f"get {key} failed: {e}") from e

    def delete(self, *keys: str) -> int:
        """Delete exact keys (no pattern matching). Returns the number deleted."""
        if not keys:
            return 0
        try:
            return int(self._client.delete(*keys))
        except redis.RedisError as e:
            raise CacheUnavailableError(f"delete {keys} failed: {e}") from e

    def delete_by_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern (SCAN, never KEYS). Returns the number deleted."""
        deleted = 0
        batch: list[str] = []
        try:
            for key in self._client.scan_iter(match=pattern, count=_DELETE_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= _DELETE_BATCH_SIZE:
                    deleted += self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += self._client.delete(*batch)
        except redis.RedisError as e:
            raise CacheUnavailableError(f"delete {pattern} failed: {e}") from e
        logger.info("Deleted %s cache keys matching %s", deleted, pattern)
        return deleted
