"""
Centralized error handling for feed failures.
Exception taxonomy plus a rule table so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class FeedError(Exception):
    """Base class for errors raised while generating a feed."""


class UpstreamFetchError(FeedError):
    """Ranking service unreachable, timed out, non-2xx, or returned a malformed body."""


class CacheUnavailableError(FeedError):
    """Feed cache store (redis) unreachable."""


class InvalidCursorError(FeedError):
    """Malformed pagination input (cursor, first, offset)."""


class InvalidFilterError(FeedError):
    """Structurally unsafe filter value, e.g. a non-identifier in a fixed-id list."""


# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400  # client input, raised before any I/O
STATUS_SERVICE_UNAVAILABLE = 503  # ranking service or cache down
STATUS_INTERNAL_ERROR = 500

MSG_UPSTREAM_UNAVAILABLE = "Feed ranking service is unavailable. Try again shortly."
MSG_CACHE_UNAVAILABLE = "Feed cache is unavailable. Try again shortly."


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code, detail or None to use str(exc))
# Add new rules here instead of scattering checks in routes. First match wins.
# ---------------------------------------------------------------------------

FEED_ERROR_RULES: list[tuple[type[Exception], int, str | None]] = [
    (InvalidCursorError, STATUS_BAD_REQUEST, None),
    (InvalidFilterError, STATUS_BAD_REQUEST, None),
    (UpstreamFetchError, STATUS_SERVICE_UNAVAILABLE, MSG_UPSTREAM_UNAVAILABLE),
    (CacheUnavailableError, STATUS_SERVICE_UNAVAILABLE, MSG_CACHE_UNAVAILABLE),
]


def feed_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from feed generation into an HTTPException.
    Uses FEED_ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code, detail in FEED_ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=detail or str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
