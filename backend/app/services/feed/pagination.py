"""
Page generators: connection arguments -> Page, and Page + nodes -> cursors / page info.

Cursors are opaque base64 strings:
- offset pagination: "arrayconnection:{n}" (n = absolute index of the node);
- time pagination: "time:{iso timestamp}|{id}" of the node's ordering column and id (tiebreak).
Malformed input raises InvalidCursorError before any I/O.
"""
import base64
import binascii
from datetime import datetime
from typing import Protocol

from app.core.constants import FEED_DEFAULT_PAGE_SIZE, FEED_MAX_PAGE_SIZE
from app.core.errors import InvalidCursorError
from app.services.feed.types import ConnectionArgs, Page

OFFSET_CURSOR_PREFIX = "arrayconnection"
TIME_CURSOR_PREFIX = "time"
_TIME_CURSOR_SEP = "|"


def encode_cursor(prefix: str, value: str) -> str:
    return base64.urlsafe_b64encode(f"{prefix}:{value}".encode()).decode()


def decode_cursor(cursor: str, prefix: str) -> str:
    """Payload of a cursor made by encode_cursor(prefix, ...). Raises InvalidCursorError otherwise."""
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}") from e
    expected, sep, value = raw.partition(":")
    if expected != prefix or not sep or not value:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}")
    return value


def page_limit(first: int | None, default: int = FEED_DEFAULT_PAGE_SIZE, max_size: int = FEED_MAX_PAGE_SIZE) -> int:
    if first is None:
        return default
    if first < 1 or first > max_size:
        raise InvalidCursorError(f"first must be between 1 and {max_size}")
    return first


class PageGenerator(Protocol):
    """Pagination contract used by resolve_feed."""

    def connection_args_to_page(self, args: ConnectionArgs) -> Page:
        ...

    def has_previous_page(self, page: Page, node_count: int) -> bool:
        ...

    def has_next_page(self, page: Page, node_count: int) -> bool:
        ...

    def node_to_cursor(self, page: Page, node: dict, index: int) -> str:
        ...


class OffsetPageGenerator:
    """Offset pagination (ranked feeds). Accepts after=<cursor> or a raw offset."""

    def __init__(self, default_page_size: int = FEED_DEFAULT_PAGE_SIZE, max_page_size: int = FEED_MAX_PAGE_SIZE) -> None:
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def connection_args_to_page(self, args: ConnectionArgs) -> Page:
        limit = page_limit(args.first, self.default_page_size, self.max_page_size)
        if args.after:
            value = decode_cursor(args.after, OFFSET_CURSOR_PREFIX)
            try:
                offset = int(value) + 1
            except ValueError as e:
                raise InvalidCursorError(f"Invalid cursor: {args.after!r}") from e
        else:
            offset = args.offset or 0
        if offset < 0:
            raise InvalidCursorError("offset must not be negative")
        return Page(limit=limit, offset=offset)

    def has_previous_page(self, page: Page, node_count: int) -> bool:
        return page.offset > 0

    def has_next_page(self, page: Page, node_count: int) -> bool:
        return node_count > page.limit

    def node_to_cursor(self, page: Page, node: dict, index: int) -> str:
        return encode_cursor(OFFSET_CURSOR_PREFIX, str(page.offset + index))


class TimePageGenerator:
    """
    Keyset pagination on (timestamp, id), newest first. cursor_field is the node key holding
    the ISO time; the id breaks ties between rows sharing a timestamp.
    """

    def __init__(
        self,
        cursor_field: str = "created_at",
        default_page_size: int = FEED_DEFAULT_PAGE_SIZE,
        max_page_size: int = FEED_MAX_PAGE_SIZE,
    ) -> None:
        self.cursor_field = cursor_field
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def connection_args_to_page(self, args: ConnectionArgs) -> Page:
        limit = page_limit(args.first, self.default_page_size, self.max_page_size)
        if not args.after:
            return Page(limit=limit)
        value = decode_cursor(args.after, TIME_CURSOR_PREFIX)
        raw_time, sep, after_id = value.partition(_TIME_CURSOR_SEP)
        if not sep or not after_id:
            raise InvalidCursorError(f"Invalid cursor: {args.after!r}")
        try:
            timestamp = datetime.fromisoformat(raw_time)
        except ValueError as e:
            raise InvalidCursorError(f"Invalid cursor: {args.after!r}") from e
        return Page(limit=limit, timestamp=timestamp, after_id=after_id)

    def has_previous_page(self, page: Page, node_count: int) -> bool:
        return page.timestamp is not None

    def has_next_page(self, page: Page, node_count: int) -> bool:
        return node_count > page.limit

    def node_to_cursor(self, page: Page, node: dict, index: int) -> str:
        return encode_cursor(TIME_CURSOR_PREFIX, f"{node[self.cursor_field]}{_TIME_CURSOR_SEP}{node['id']}")
