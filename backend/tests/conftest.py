"""
Shared fixtures: in-memory SQLite database, fakeredis feed cache and a stub ranking service.
"""
from datetime import datetime, timedelta

import fakeredis
import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers every model on Base.metadata)
from app.db.base import Base
from app.models import Post, PostKeyword, Source
from app.services.feed.cache_store import FeedCacheStore
from app.services.feed.personalized import PersonalizedFeedCache
from app.services.feed.ranking_client import RankingClient, RankingConfig

RANKING_BASE_URL = "http://localhost:6000"
RANKING_TOKEN = "token"
BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class RankingServiceStub:
    """Stands in for the ranking service; records every request it receives."""

    def __init__(self, ids: list[str] | None = None, status_code: int = 200) -> None:
        self.ids = ids if ids is not None else ["1", "2", "3", "4", "5", "6"]
        self.status_code = status_code
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "unavailable"})
        return httpx.Response(200, json={"data": [{"post_id": i} for i in self.ids]})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def last_params(self) -> list[tuple[str, str]]:
        return list(self.requests[-1].url.params.multi_items())


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(redis_client):
    return FeedCacheStore(redis_client)


@pytest.fixture
def ranking_stub():
    return RankingServiceStub()


@pytest.fixture
def ranking_client(ranking_stub):
    config = RankingConfig(base_url=RANKING_BASE_URL, token=RANKING_TOKEN, timeout=5.0)
    return RankingClient(config, transport=ranking_stub.transport)


@pytest.fixture
def feed_cache(store, ranking_client):
    return PersonalizedFeedCache(store, ranking_client, stale_after=timedelta(minutes=30), fresh_page_ratio=1 / 3)


@pytest.fixture
def sources(db):
    rows = [
        Source(id="a", name="A", active=True),
        Source(id="b", name="B", active=True),
        Source(id="c", name="C", active=True),
        Source(id="inactive", name="Inactive", active=False),
    ]
    db.add_all(rows)
    db.commit()
    return rows


def add_post(
    db,
    post_id: str,
    source_id: str = "a",
    *,
    score: int = 0,
    minutes_ago: int = 0,
    keywords: list[str] | None = None,
    **fields,
) -> Post:
    post = Post(
        id=post_id,
        short_id=f"s{post_id}",
        title=f"Post {post_id}",
        url=f"https://example.com/{post_id}",
        source_id=source_id,
        score=score,
        created_at=BASE_TIME - timedelta(minutes=minutes_ago),
        metadata_changed_at=BASE_TIME,
        **fields,
    )
    db.add(post)
    db.flush()
    db.add_all(PostKeyword(post_id=post_id, keyword=k) for k in keywords or [])
    db.commit()
    return post
