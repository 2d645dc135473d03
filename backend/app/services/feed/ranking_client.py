"""Ranking service client: lowest level, sends the feed request and parses post ids. No caching, no retries."""
import logging
from typing import Any

import httpx

from app.config import settings
from app.core.constants import RANKING_FEED_PATH
from app.core.errors import UpstreamFetchError
from app.services.feed.types import FeedFilters, FeedSpec

logger = logging.getLogger(__name__)


class RankingConfig:
    """Base URL, token and timeout for the ranking service. Defaults come from settings (.env)."""

    __slots__ = ("base_url", "token", "timeout")

    def __init__(
        self,
        *,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ranking_service_url).rstrip("/")
        self.token = token if token is not None else settings.ranking_service_token
        self.timeout = timeout if timeout is not None else settings.ranking_service_timeout_seconds


def _csv(values: tuple[str, ...] | list[str] | None) -> str | None:
    if not values:
        return None
    return ",".join(values)


def build_ranking_params(spec: FeedSpec, fresh_page_size: int, token: str, filters: FeedFilters | None = None) -> list[tuple[str, str]]:
    """
    Query parameters in the order the ranking service expects:
    token, page_size, fresh_page_size, user_id, allowed_tags, blocked_tags, blocked_sources.
    Optional parameters are omitted entirely when empty.
    """
    params: list[tuple[str, str]] = [
        ("token", token),
        ("page_size", str(spec.page_size)),
        ("fresh_page_size", str(fresh_page_size)),
    ]
    optional = [
        ("user_id", spec.user_id or None),
        ("allowed_tags", _csv(filters.include_tags) if filters else None),
        ("blocked_tags", _csv(filters.blocked_tags) if filters else None),
        ("blocked_sources", _csv(filters.exclude_sources) if filters else None),
    ]
    params.extend((name, value) for name, value in optional if value)
    return params


def parse_ranking_response(body: Any) -> list[str]:
    """Post ids from {"data": [{"post_id": ...}, ...]}, in rank order."""
    if not isinstance(body, dict) or not isinstance(body.get("data"), list):
        raise UpstreamFetchError("Ranking service returned an unexpected body")
    ids: list[str] = []
    for item in body["data"]:
        post_id = item.get("post_id") if isinstance(item, dict) else None
        if post_id is None or post_id == "":
            raise UpstreamFetchError("Ranking service returned an item without post_id")
        ids.append(str(post_id))
    return ids


class RankingClient:
    """GET {base}/feed.json. Any failure raises UpstreamFetchError; retrying is the caller's call."""

    def __init__(self, config: RankingConfig | None = None, *, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config or RankingConfig()
        self._transport = transport

    def fetch_ranking(self, spec: FeedSpec, fresh_page_size: int, filters: FeedFilters | None = None) -> list[str]:
        url = f"{self._config.base_url}{RANKING_FEED_PATH}"
        params = build_ranking_params(spec, fresh_page_size, self._config.token, filters)
        try:
            with httpx.Client(timeout=self._config.timeout, transport=self._transport) as c:
                r = c.get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning("Ranking service request failed user=%s feed=%s: %s", spec.user_id, spec.feed_id, e)
            raise UpstreamFetchError(f"Ranking service request failed: {e}") from e
        if not r.is_success:
            logger.warning("Ranking service returned %s: %s", r.status_code, r.text[:500] if r.text else None)
            raise UpstreamFetchError(f"Ranking service error: {r.status_code}")
        try:
            body = r.json()
        except ValueError as e:
            raise UpstreamFetchError("Ranking service returned invalid JSON") from e
        ids = parse_ranking_response(body)
        logger.debug("Ranking service returned %s ids (page_size=%s)", len(ids), spec.page_size)
        return ids
