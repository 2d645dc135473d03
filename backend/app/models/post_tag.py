"""Raw tags sent by the scraper, kept as-is (not normalized like keywords)."""
from sqlalchemy import Column, ForeignKey, String

from app.db.base import Base


class PostTag(Base):
    __tablename__ = "post_tags"

    post_id = Column(String(64), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    tag = Column(String(128), primary_key=True, index=True)
