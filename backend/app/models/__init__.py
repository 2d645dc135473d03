from app.models.bookmark import Bookmark
from app.models.comment import Comment
from app.models.feed import Feed, FeedSource, FeedTag
from app.models.hidden_post import HiddenPost
from app.models.keyword import Keyword, PostKeyword
from app.models.post import Post
from app.models.post_tag import PostTag
from app.models.source import Source
from app.models.user import User
from app.models.view import View

__all__ = [
    "Bookmark",
    "Comment",
    "Feed",
    "FeedSource",
    "FeedTag",
    "HiddenPost",
    "Keyword",
    "Post",
    "PostKeyword",
    "PostTag",
    "Source",
    "User",
    "View",
]
