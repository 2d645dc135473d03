"""Posts a user asked not to see again."""
from sqlalchemy import Column, ForeignKey, String

from app.db.base import Base


class HiddenPost(Base):
    __tablename__ = "hidden_posts"

    post_id = Column(String(64), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(64), primary_key=True, index=True)
