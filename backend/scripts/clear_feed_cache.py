#!/usr/bin/env python3
"""Delete all cached personalized feed rankings (feeds:* in redis). Next request per feed refetches.
Run from backend: python scripts/clear_feed_cache.py [pattern]
"""
import sys
from pathlib import Path

# Ensure backend is on path when run as script
backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import redis

from app.config import settings
from app.core.constants import FEED_CACHE_PATTERN
from app.core.errors import CacheUnavailableError
from app.services.admin_service import clear_feed_caches
from app.services.feed.cache_store import FeedCacheStore


def main():
    pattern = sys.argv[1] if len(sys.argv) > 1 else FEED_CACHE_PATTERN
    client = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        deleted = clear_feed_caches(FeedCacheStore(client), pattern)
        print(f"Feed cache cleared. Keys deleted ({pattern}): {deleted}")
    except CacheUnavailableError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        client.close()


if __name__ == "__main__":
    main()
