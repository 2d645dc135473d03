"""
Composable SQL predicates for feed filtering.

Every builder is a pure function of its arguments and the aliased Post entity the outer
query selects from; it returns a boolean SQLAlchemy expression (EXISTS / NOT / AND / OR /
comparison) that callers combine with and_/or_/not_ or pass to Select.where. Subqueries
are correlated EXISTS, never joins, so a post matching several tags is returned once.
All values are bound parameters.
"""
import re

from sqlalchemy import Select, case, exists, false, not_, or_, select
from sqlalchemy.sql.elements import ColumnElement

from app.core.constants import NO_SUCH_ID
from app.core.errors import InvalidFilterError
from app.models.feed import FeedSource, FeedTag
from app.models.hidden_post import HiddenPost
from app.models.keyword import PostKeyword
from app.models.source import Source
from app.models.view import View
from app.services.feed.types import FeedContext

# Ids that may appear in a fixed-id feed (post ids are url-safe short strings)
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


# --- Tags / keywords ---


def where_tags(tags, post) -> ColumnElement[bool]:
    """Post has at least one of the keywords in tags."""
    return exists().where(PostKeyword.post_id == post.id, PostKeyword.keyword.in_(list(tags)))


def where_not_tags(tags, post) -> ColumnElement[bool]:
    return not_(where_tags(tags, post))


def where_keyword(keyword: str, post) -> ColumnElement[bool]:
    return exists().where(PostKeyword.post_id == post.id, PostKeyword.keyword == keyword)


# --- Feed configuration ---


def _feed_tags(feed_id: str):
    return select(FeedTag.tag).where(FeedTag.feed_id == feed_id, FeedTag.blocked.is_(False))


def where_tags_in_feed(feed_id: str, post) -> ColumnElement[bool]:
    """Post matches one of the feed's followed tags, or the feed follows no tags at all."""
    feed_tags = _feed_tags(feed_id)
    return or_(
        not_(feed_tags.exists()),
        exists().where(PostKeyword.post_id == post.id, PostKeyword.keyword.in_(feed_tags)),
    )


def where_sources_in_feed(feed_id: str, post) -> ColumnElement[bool]:
    """Post's source is not excluded by the feed."""
    excluded = select(FeedSource.source_id).where(FeedSource.feed_id == feed_id)
    return post.source_id.not_in(excluded)


# --- Sources ---


def where_sources(source_ids, post) -> ColumnElement[bool]:
    return post.source_id.in_(list(source_ids))


def where_not_sources(source_ids, post) -> ColumnElement[bool]:
    return post.source_id.not_in(list(source_ids))


# --- Read history ---


def select_read(user_id: str, post) -> ColumnElement[bool]:
    """User has viewed the post."""
    return exists().where(View.post_id == post.id, View.user_id == user_id)


def where_unread(user_id: str, post) -> ColumnElement[bool]:
    return not_(select_read(user_id, post))


# --- Fixed ids ---


def is_safe_id(post_id) -> bool:
    return isinstance(post_id, str) and _SAFE_ID.fullmatch(post_id) is not None


def validate_fixed_ids(ids) -> list[str]:
    """Raise InvalidFilterError unless every id is a safe identifier. Empty list -> sentinel id."""
    ids = [str(i) for i in ids]
    bad = [i for i in ids if not is_safe_id(i)]
    if bad:
        raise InvalidFilterError(f"Invalid post id(s): {', '.join(repr(b) for b in bad[:5])}")
    return ids or [NO_SUCH_ID]


def where_fixed_ids(ids, post) -> ColumnElement[bool]:
    return post.id.in_(validate_fixed_ids(ids))


def order_by_fixed_ids(ids, post) -> ColumnElement:
    """Position of the post id in ids (list order = rank order)."""
    ids = validate_fixed_ids(ids)
    return case({post_id: position for position, post_id in enumerate(ids)}, value=post.id, else_=len(ids))


# --- Global exclusion policy ---


def where_source_active(post) -> ColumnElement[bool]:
    return exists().where(Source.id == post.source_id, Source.active.is_(True))


def where_not_hidden(user_id: str, post) -> ColumnElement[bool]:
    return not_(exists().where(HiddenPost.post_id == post.id, HiddenPost.user_id == user_id))


def apply_feed_where(
    ctx: FeedContext,
    stmt: Select,
    post,
    remove_hidden_posts: bool = True,
    remove_banned_posts: bool = True,
) -> Select:
    """Exclude posts from inactive sources, deleted posts, banned posts and posts the viewer hid."""
    stmt = stmt.where(where_source_active(post), post.deleted.is_(False))
    if ctx.user_id and remove_hidden_posts:
        stmt = stmt.where(where_not_hidden(ctx.user_id, post))
    if remove_banned_posts:
        stmt = stmt.where(post.banned.is_(False))
    return stmt


def never() -> ColumnElement[bool]:
    """Predicate that matches no post (e.g. a user-only feed requested anonymously)."""
    return false()
