import json

import pytest

from app.models import Keyword, Post, PostKeyword, PostTag, User
from app.models.keyword import KEYWORD_ALLOW, KEYWORD_DENY, KEYWORD_PENDING, KEYWORD_SYNONYM
from app.workers import get_worker, handle_message, list_subscriptions
from app.workers.new_post import handle_new_post, merge_keywords, normalize_twitter, short_id
from conftest import add_post


def _message(**overrides):
    data = {
        "id": "p1",
        "title": "Title &amp; more",
        "url": "https://post.com",
        "publicationId": "a",
        "publishedAt": "2024-01-01T10:00:00+00:00",
        "image": "https://image.com",
        "ratio": 1.5,
        "placeholder": "data:image/jpeg;base64,abc",
        "tags": ["webdev", "javascript", "webdev"],
        "readTime": 4.6,
        "creatorTwitter": "@NewGenDeveloper2",
    }
    data.update(overrides)
    return data


def _keywords(db, post_id):
    return sorted(k for (k,) in db.query(PostKeyword.keyword).filter(PostKeyword.post_id == post_id))


def test_saves_new_post(db, sources):
    assert handle_new_post(db, _message()) == "p1"

    post = db.get(Post, "p1")
    assert post.title == "Title & more"
    assert post.source_id == "a"
    assert post.short_id == short_id("p1")
    assert post.read_time == 5
    assert post.ratio == 1.5
    assert post.creator_twitter == "NewGenDeveloper2"
    assert post.score > 0
    assert post.tags_str is None
    assert sorted(t for (t,) in db.query(PostTag.tag).filter(PostTag.post_id == "p1")) == ["javascript", "webdev"]


def test_ignores_message_without_title_or_url(db, sources):
    assert handle_new_post(db, _message(title=None)) is None
    assert handle_new_post(db, _message(url="")) is None
    assert db.query(Post).count() == 0


def test_ignores_existing_url(db, sources):
    add_post(db, "existing", "a", canonical_url="https://canonical.com")
    db.query(Post).filter(Post.id == "existing").update({Post.url: "https://post.com"})
    db.commit()

    assert handle_new_post(db, _message(id="p2")) is None
    assert handle_new_post(db, _message(id="p3", url="https://other.com", canonicalUrl="https://canonical.com")) is None
    assert handle_new_post(db, _message(id="p4", url="https://canonical.com")) is None
    assert db.query(Post).count() == 1


def test_ignores_unknown_source(db, sources):
    assert handle_new_post(db, _message(publicationId="nope")) is None
    assert db.query(Post).count() == 0


def test_ignores_banned_author(db, sources):
    assert handle_new_post(db, _message(creatorTwitter="@NewGenDeveloper")) is None
    assert db.query(Post).count() == 0


def test_invalid_message_is_dropped(db, sources):
    assert handle_new_post(db, {"title": "no id"}) is None


def test_matches_author_by_twitter(db, sources):
    db.add(User(id="u1", name="Ido", username="idoshamun", twitter="IdoShamun"))
    db.commit()

    handle_new_post(db, _message(creatorTwitter="@idoshamun"))
    assert db.get(Post, "p1").author_id == "u1"


def test_does_not_match_author_by_username(db, sources):
    db.add(User(id="u1", name="Ido", username="someone", twitter="ido"))
    db.commit()

    handle_new_post(db, _message(creatorTwitter="someone"))
    assert db.get(Post, "p1").author_id is None


def test_keywords_are_normalized_and_counted(db, sources):
    db.add_all(
        [
            Keyword(value="javascript", status=KEYWORD_ALLOW, occurrences=10),
            Keyword(value="js", status=KEYWORD_SYNONYM, synonym="javascript", occurrences=3),
            Keyword(value="spam", status=KEYWORD_DENY, occurrences=1),
        ]
    )
    db.commit()

    handle_new_post(db, _message(keywords=["JavaScript", " webdev ", "2021", "js", "spam", "webdev"]))

    assert _keywords(db, "p1") == ["javascript", "spam", "webdev"]
    assert db.get(Post, "p1").tags_str == "javascript"
    assert db.get(Keyword, "javascript").occurrences == 11
    assert db.get(Keyword, "js").occurrences == 4
    webdev = db.get(Keyword, "webdev")
    assert webdev.status == KEYWORD_PENDING
    assert webdev.occurrences == 1
    assert db.get(Keyword, "2021") is None


def test_merge_keywords_keeps_message_order(db):
    db.add_all(
        [
            Keyword(value="golang", status=KEYWORD_ALLOW),
            Keyword(value="go", status=KEYWORD_SYNONYM, synonym="golang"),
            Keyword(value="backend", status=KEYWORD_ALLOW),
        ]
    )
    db.commit()
    assert merge_keywords(db, ["backend", "go", "golang"]) == (["backend", "golang"], ["backend", "golang"])
    assert merge_keywords(db, []) == ([], [])


@pytest.mark.parametrize("raw,expected", [("@handle", "handle"), ("handle", "handle"), ("@", None), ("", None), (None, None)])
def test_normalize_twitter(raw, expected):
    assert normalize_twitter(raw) == expected


def test_registry_dispatches_by_subscription(db, sources):
    assert set(list_subscriptions()) == {"add-posts-v2", "comment-upvoted-rep"}
    assert get_worker("add-posts-v2") is handle_new_post
    with pytest.raises(KeyError):
        get_worker("unknown")

    assert handle_message(db, "add-posts-v2", json.dumps(_message()).encode()) == "p1"
    assert handle_message(db, "add-posts-v2", b"not json") is None
    assert handle_message(db, "add-posts-v2", b"[1, 2]") is None
