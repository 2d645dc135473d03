"""Saved posts. list_id groups bookmarks into lists (premium only)."""
from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from app.db.base import Base


class Bookmark(Base):
    __tablename__ = "bookmarks"

    post_id = Column(String(64), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(64), primary_key=True, index=True)
    list_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
