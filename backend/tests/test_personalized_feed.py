from datetime import datetime, timedelta, timezone

import fakeredis
import pytest

from app.core.errors import CacheUnavailableError, UpstreamFetchError
from app.models import Feed, FeedSource, FeedTag
from app.services.feed.cache_store import FeedCacheStore
from app.services.feed.personalized import (
    PersonalizedFeedCache,
    feed_cache_key,
    feed_time_key,
    feed_to_filters,
    generate_personalized_feed,
)
from app.services.feed.types import FeedFilters, FeedSpec


def _seed(redis_client, key, ids, age: timedelta):
    redis_client.zadd(key, {post_id: i for i, post_id in enumerate(ids)})
    redis_client.set(feed_time_key(key), (datetime.now(timezone.utc) - age).isoformat())


def _save_feed(db, sources):
    db.add(Feed(id="1", user_id="u1"))
    db.add_all(
        [
            FeedTag(feed_id="1", tag="javascript"),
            FeedTag(feed_id="1", tag="golang"),
            FeedTag(feed_id="1", tag="python", blocked=True),
            FeedTag(feed_id="1", tag="java", blocked=True),
            FeedSource(feed_id="1", source_id="a"),
            FeedSource(feed_id="1", source_id="b"),
        ]
    )
    db.commit()


def test_cache_key_derivation():
    assert feed_cache_key() == "feeds:anonymous"
    assert feed_cache_key(user_id="u1") == "feeds:anonymous:u1"
    assert feed_cache_key("1", "u1") == "feeds:1:u1"
    assert feed_time_key("feeds:1:u1") == "feeds:1:u1:time"


@pytest.mark.parametrize("window,expected", [(1, 1), (2, 1), (3, 1), (4, 2), (30, 10), (31, 11)])
def test_fresh_page_size(feed_cache, window, expected):
    assert feed_cache.fresh_page_size(window) == expected


def test_cold_cache_fetches_then_serves_next_page_from_cache(feed_cache, ranking_stub, redis_client):
    assert feed_cache.get_feed(FeedSpec(page_size=2, offset=0)) == ["1", "2"]
    assert ranking_stub.last_params == [("token", "token"), ("page_size", "2"), ("fresh_page_size", "1")]

    assert feed_cache.get_feed(FeedSpec(page_size=2, offset=2)) == ["3", "4"]
    assert len(ranking_stub.requests) == 1
    assert redis_client.zrange("feeds:anonymous", 0, -1) == ["1", "2", "3", "4", "5", "6"]
    assert redis_client.get("feeds:anonymous:time") is not None


def test_consecutive_first_page_requests_use_cache(feed_cache, ranking_stub):
    assert feed_cache.get_feed(FeedSpec(page_size=2)) == ["1", "2"]
    assert feed_cache.get_feed(FeedSpec(page_size=2)) == ["1", "2"]
    assert len(ranking_stub.requests) == 1


def test_stale_cache_is_refreshed_on_first_page(feed_cache, ranking_stub, redis_client):
    _seed(redis_client, "feeds:anonymous", ["7", "8"], timedelta(minutes=60))

    assert feed_cache.get_feed(FeedSpec(page_size=2)) == ["1", "2"]
    assert len(ranking_stub.requests) == 1
    # Previously cached ids stay behind the refreshed ranking
    assert redis_client.zrange("feeds:anonymous", 0, -1) == ["1", "2", "3", "4", "5", "6", "7", "8"]


def test_fresh_cache_is_served_without_fetching(feed_cache, ranking_stub, redis_client):
    _seed(redis_client, "feeds:anonymous", ["7", "8"], timedelta(minutes=5))

    assert feed_cache.get_feed(FeedSpec(page_size=2)) == ["7", "8"]
    assert ranking_stub.requests == []


def test_fresh_cache_survives_ranking_outage(feed_cache, ranking_stub, redis_client):
    _seed(redis_client, "feeds:anonymous", ["7", "8"], timedelta(minutes=5))
    ranking_stub.status_code = 503

    assert feed_cache.get_feed(FeedSpec(page_size=2)) == ["7", "8"]


def test_stale_cache_is_not_refetched_past_first_page(feed_cache, ranking_stub, redis_client):
    _seed(redis_client, "feeds:anonymous", ["7", "8", "9", "10"], timedelta(minutes=60))

    assert feed_cache.get_feed(FeedSpec(page_size=2, offset=2)) == ["9", "10"]
    assert ranking_stub.requests == []


def test_page_beyond_cached_range_appends_new_ids(feed_cache, ranking_stub, redis_client):
    _seed(redis_client, "feeds:anonymous", ["7", "8"], timedelta(minutes=5))
    ranking_stub.ids = ["7", "8", "9", "10"]

    assert feed_cache.get_feed(FeedSpec(page_size=2, offset=2)) == ["9", "10"]
    assert ("page_size", "4") in ranking_stub.last_params
    assert redis_client.zrange("feeds:anonymous", 0, -1) == ["7", "8", "9", "10"]


def test_short_ranking_returns_partial_page(feed_cache, ranking_stub):
    ranking_stub.ids = ["1"]
    assert feed_cache.get_feed(FeedSpec(page_size=2)) == ["1"]


def test_feed_filters_are_sent_to_ranking_service(db, sources, feed_cache, ranking_stub):
    _save_feed(db, sources)

    assert generate_personalized_feed(db, feed_cache, 2, 0, "u1", "1") == ["1", "2"]
    assert ranking_stub.last_params == [
        ("token", "token"),
        ("page_size", "2"),
        ("fresh_page_size", "1"),
        ("user_id", "u1"),
        ("allowed_tags", "javascript,golang"),
        ("blocked_tags", "python,java"),
        ("blocked_sources", "a,b"),
    ]


def test_filters_not_loaded_on_cache_hit(feed_cache, redis_client):
    _seed(redis_client, "feeds:1:u1", ["7", "8"], timedelta(minutes=5))

    def load_filters():
        raise AssertionError("filters loaded for a cache hit")

    assert feed_cache.get_feed(FeedSpec(page_size=2, user_id="u1", feed_id="1"), load_filters) == ["7", "8"]


def test_feed_to_filters_reads_rows_in_order(db, sources):
    _save_feed(db, sources)
    assert feed_to_filters(db, "1") == FeedFilters(
        include_tags=("javascript", "golang"),
        blocked_tags=("python", "java"),
        exclude_sources=("a", "b"),
    )
    assert feed_to_filters(db, "missing").is_empty()


def test_upstream_failure_on_cold_cache_propagates(feed_cache, ranking_stub, redis_client):
    ranking_stub.status_code = 500

    with pytest.raises(UpstreamFetchError):
        feed_cache.get_feed(FeedSpec(page_size=2))
    assert redis_client.exists("feeds:anonymous", "feeds:anonymous:time") == 0


def test_upstream_failure_on_stale_cache_propagates(feed_cache, ranking_stub, redis_client):
    _seed(redis_client, "feeds:anonymous", ["7", "8"], timedelta(minutes=60))
    ranking_stub.status_code = 500

    with pytest.raises(UpstreamFetchError):
        feed_cache.get_feed(FeedSpec(page_size=2))


class _ReadOnlyStore(FeedCacheStore):
    def add_scored(self, key, members, *, only_new=False):
        raise CacheUnavailableError("read only replica")


def test_cache_write_failure_still_serves_fetched_page(redis_client, ranking_client, ranking_stub):
    cache = PersonalizedFeedCache(_ReadOnlyStore(redis_client), ranking_client)

    assert cache.get_feed(FeedSpec(page_size=2, offset=2)) == ["3", "4"]
    assert len(ranking_stub.requests) == 1


def test_cache_read_failure_raises(ranking_client):
    server = fakeredis.FakeServer()
    server.connected = False
    cache = PersonalizedFeedCache(FeedCacheStore(fakeredis.FakeRedis(server=server, decode_responses=True)), ranking_client)

    with pytest.raises(CacheUnavailableError):
        cache.get_feed(FeedSpec(page_size=2))


def test_clear_removes_only_feed_keys(feed_cache, redis_client):
    _seed(redis_client, "feeds:anonymous", ["7"], timedelta(minutes=5))
    _seed(redis_client, "feeds:1:u1", ["8"], timedelta(minutes=5))
    redis_client.set("sessions:u1", "x")

    assert feed_cache.clear() == 4
    assert redis_client.keys("feeds:*") == []
    assert redis_client.get("sessions:u1") == "x"


def test_unparsable_timestamp_counts_as_cold(feed_cache, ranking_stub, redis_client):
    redis_client.zadd("feeds:anonymous", {"7": 0, "8": 1})
    redis_client.set("feeds:anonymous:time", "not-a-date")

    assert feed_cache.get_feed(FeedSpec(page_size=2)) == ["1", "2"]
    assert len(ranking_stub.requests) == 1


def test_empty_page_reads_nothing(feed_cache, ranking_stub, redis_client):
    _seed(redis_client, "feeds:anonymous", ["7", "8"], timedelta(minutes=5))

    assert feed_cache.get_feed(FeedSpec(page_size=0)) == []
    assert feed_cache.get_feed(FeedSpec(page_size=0, offset=1)) == []
    assert ranking_stub.requests == []
