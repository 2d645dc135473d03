import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import aliased

from app.core.errors import InvalidFilterError
from app.models import Feed, FeedSource, FeedTag, HiddenPost, Post, View
from app.services.feed.predicates import (
    apply_feed_where,
    never,
    order_by_fixed_ids,
    select_read,
    validate_fixed_ids,
    where_fixed_ids,
    where_keyword,
    where_not_sources,
    where_not_tags,
    where_sources,
    where_sources_in_feed,
    where_tags,
    where_tags_in_feed,
    where_unread,
)
from app.services.feed.types import FeedContext
from conftest import add_post


@pytest.fixture
def posts(db, sources):
    add_post(db, "p1", "a", keywords=["javascript", "webdev"])
    add_post(db, "p2", "b", keywords=["python"])
    add_post(db, "p3", "a")
    add_post(db, "p4", "c", keywords=["golang", "javascript"])
    return ["p1", "p2", "p3", "p4"]


def _ids(db, predicate_fn, *order_by):
    post = aliased(Post, name="post")
    stmt = select(post.id).where(predicate_fn(post)).order_by(*(order_by or (post.id,)))
    return [row[0] for row in db.execute(stmt).all()]


def test_where_tags_matches_any_tag_once(db, posts):
    assert _ids(db, lambda p: where_tags(["javascript", "webdev"], p)) == ["p1", "p4"]


def test_where_tags_and_not_tags_partition_posts(db, posts):
    tags = ["javascript", "python"]
    matched = set(_ids(db, lambda p: where_tags(tags, p)))
    unmatched = set(_ids(db, lambda p: where_not_tags(tags, p)))
    assert matched.isdisjoint(unmatched)
    assert matched | unmatched == set(posts)


def test_where_keyword(db, posts):
    assert _ids(db, lambda p: where_keyword("golang", p)) == ["p4"]


def test_sources_include_and_exclude(db, posts):
    assert _ids(db, lambda p: where_sources(["a"], p)) == ["p1", "p3"]
    assert _ids(db, lambda p: where_not_sources(["a"], p)) == ["p2", "p4"]


def test_feed_without_followed_tags_allows_every_post(db, posts):
    db.add(Feed(id="f1", user_id="u1"))
    db.add(FeedTag(feed_id="f1", tag="python", blocked=True))
    db.commit()
    assert _ids(db, lambda p: where_tags_in_feed("f1", p)) == posts


def test_feed_with_followed_tags(db, posts):
    db.add(Feed(id="f1", user_id="u1"))
    db.add_all([FeedTag(feed_id="f1", tag="golang"), FeedTag(feed_id="f1", tag="python")])
    db.commit()
    assert _ids(db, lambda p: where_tags_in_feed("f1", p)) == ["p2", "p4"]


def test_feed_excluded_sources(db, posts):
    db.add(Feed(id="f1", user_id="u1"))
    db.add(FeedSource(feed_id="f1", source_id="a"))
    db.commit()
    assert _ids(db, lambda p: where_sources_in_feed("f1", p)) == ["p2", "p4"]
    assert _ids(db, lambda p: where_sources_in_feed("other", p)) == posts


def test_read_and_unread(db, posts):
    db.add(View(user_id="u1", post_id="p2"))
    db.commit()
    assert _ids(db, lambda p: select_read("u1", p)) == ["p2"]
    assert _ids(db, lambda p: where_unread("u1", p)) == ["p1", "p3", "p4"]
    assert _ids(db, lambda p: where_unread("u2", p)) == posts


def test_fixed_ids_filter_and_order(db, posts):
    post = aliased(Post, name="post")
    ids = ["p3", "p1", "missing", "p4"]
    stmt = select(post.id).where(where_fixed_ids(ids, post)).order_by(order_by_fixed_ids(ids, post))
    assert [row[0] for row in db.execute(stmt).all()] == ["p3", "p1", "p4"]


def test_fixed_ids_accept_64_char_ids():
    assert validate_fixed_ids(["x" * 64, "a_B-9"]) == ["x" * 64, "a_B-9"]


def test_empty_fixed_ids_match_nothing(db, posts):
    assert validate_fixed_ids([]) == ["nosuchid"]
    assert _ids(db, lambda p: where_fixed_ids([], p)) == []


@pytest.mark.parametrize("bad", ["a b", "1;drop table posts", "", "x" * 65, "id'", "abc\n"])
def test_unsafe_fixed_ids_rejected(bad):
    with pytest.raises(InvalidFilterError):
        validate_fixed_ids(["ok", bad])


def test_never_matches_nothing(db, posts):
    assert _ids(db, lambda p: never()) == []


def test_values_are_bound_parameters():
    post = aliased(Post, name="post")
    stmt = select(post.id).where(where_tags(["javascript"], post), where_unread("u1", post))
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    assert "javascript" not in sql
    assert "u1" not in sql
    assert "EXISTS" in sql


def test_global_exclusion_policy(db, sources):
    add_post(db, "ok", "a")
    add_post(db, "from_inactive", "inactive")
    add_post(db, "deleted", "a", deleted=True)
    add_post(db, "banned", "a", banned=True)
    add_post(db, "hidden", "a")
    db.add(HiddenPost(user_id="u1", post_id="hidden"))
    db.commit()
    post = aliased(Post, name="post")

    def run(ctx, **kwargs):
        stmt = apply_feed_where(ctx, select(post.id).order_by(post.id), post, **kwargs)
        return [row[0] for row in db.execute(stmt).all()]

    assert run(FeedContext(user_id="u1")) == ["ok"]
    assert run(FeedContext()) == ["hidden", "ok"]
    assert run(FeedContext(user_id="u1"), remove_hidden_posts=False) == ["hidden", "ok"]
    assert run(FeedContext(user_id="u1"), remove_banned_posts=False) == ["banned", "ok"]
