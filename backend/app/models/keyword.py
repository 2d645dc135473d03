"""Normalized keywords. Only status=allow keywords surface as post tags; synonym rows point at their canonical value."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, text
from sqlalchemy.sql import func

from app.db.base import Base

KEYWORD_PENDING = "pending"
KEYWORD_ALLOW = "allow"
KEYWORD_DENY = "deny"
KEYWORD_SYNONYM = "synonym"


class Keyword(Base):
    __tablename__ = "keywords"

    value = Column(String(128), primary_key=True)
    status = Column(String(16), nullable=False, default=KEYWORD_PENDING, server_default=KEYWORD_PENDING, index=True)
    synonym = Column(String(128), nullable=True)
    occurrences = Column(Integer, nullable=False, default=1, server_default=text("1"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class PostKeyword(Base):
    """Post to keyword association; the predicate composer filters tags through this table."""
    __tablename__ = "post_keywords"

    post_id = Column(String(64), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    keyword = Column(String(128), primary_key=True, index=True)
