"""Value types shared by the feed cache, ranking client and resolvers. Built per request, never persisted."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Ranking(str, Enum):
    POPULARITY = "POPULARITY"
    TIME = "TIME"


@dataclass(frozen=True)
class FeedSpec:
    """Which ranked list to fetch/cache and which slice of it to return."""
    page_size: int
    offset: int = 0
    user_id: str | None = None
    feed_id: str | None = None


@dataclass(frozen=True)
class FeedFilters:
    """
    Tag/source filters of a feed. Tuples keep the persisted row order, which is
    the order values are comma-joined for the ranking service.
    """
    include_sources: tuple[str, ...] = ()
    exclude_sources: tuple[str, ...] = ()
    include_tags: tuple[str, ...] = ()
    blocked_tags: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not (self.include_sources or self.exclude_sources or self.include_tags or self.blocked_tags)


@dataclass(frozen=True)
class FeedContext:
    """Viewer of the feed. user_id is None for anonymous visitors."""
    user_id: str | None = None
    premium: bool = False


@dataclass(frozen=True)
class ConnectionArgs:
    """Relay-style connection arguments; offset is accepted by offset-paginated feeds."""
    first: int | None = None
    after: str | None = None
    offset: int | None = None


@dataclass(frozen=True)
class Page:
    """
    Page descriptor. limit is the requested count (resolvers fetch limit + 1 to detect a
    next page); offset applies to offset pagination, (timestamp, after_id) to time keyset pagination.
    """
    limit: int
    offset: int = 0
    timestamp: datetime | None = None
    after_id: str | None = None


@dataclass
class FeedConnection:
    """Cursor-paginated result, as returned by resolve_feed."""
    nodes: list[dict] = field(default_factory=list)
    cursors: list[str] = field(default_factory=list)
    has_next_page: bool = False
    has_previous_page: bool = False

    def to_dict(self) -> dict:
        return {
            "edges": [{"node": n, "cursor": c} for n, c in zip(self.nodes, self.cursors)],
            "page_info": {
                "has_next_page": self.has_next_page,
                "has_previous_page": self.has_previous_page,
                "start_cursor": self.cursors[0] if self.cursors else None,
                "end_cursor": self.cursors[-1] if self.cursors else None,
            },
        }
