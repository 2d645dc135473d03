from app.models import Comment, User
from app.services.reputation_service import increase_reputation
from app.workers.comment_upvoted_rep import handle_comment_upvoted_rep
from conftest import add_post


def _setup(db, sources):
    db.add_all([User(id="1", name="Ido"), User(id="2", name="Tsahi")])
    db.commit()
    add_post(db, "p1", "a")
    db.add(Comment(id="c1", post_id="p1", user_id="1", content="comment"))
    db.commit()


def _reputation(db, user_id):
    db.expire_all()
    return db.get(User, user_id).reputation


def test_increase_reputation(db, sources):
    _setup(db, sources)
    assert handle_comment_upvoted_rep(db, {"userId": "2", "commentId": "c1"}) is True
    assert _reputation(db, "1") == 11


def test_no_reputation_for_own_upvote(db, sources):
    _setup(db, sources)
    assert handle_comment_upvoted_rep(db, {"userId": "1", "commentId": "c1"}) is False
    assert _reputation(db, "1") == 10


def test_missing_comment_is_ignored(db, sources):
    _setup(db, sources)
    assert handle_comment_upvoted_rep(db, {"userId": "2", "commentId": "missing"}) is False
    assert handle_comment_upvoted_rep(db, {"userId": "2"}) is False


def test_increase_reputation_unknown_user(db):
    assert increase_reputation(db, "ghost", 5) is False
