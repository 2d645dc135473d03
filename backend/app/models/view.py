"""Read history: one row per (user, post) the user opened."""
from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func

from app.db.base import Base


class View(Base):
    __tablename__ = "views"

    post_id = Column(String(64), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(64), primary_key=True, index=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
