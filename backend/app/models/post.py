"""Ingested article. Feeds select from this table; tags/keywords live in post_tags/post_keywords."""
from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, text
from sqlalchemy.sql import func

from app.db.base import Base


class Post(Base):
    __tablename__ = "posts"

    id = Column(String(64), primary_key=True)
    short_id = Column(String(16), nullable=True, unique=True)
    title = Column(Text, nullable=False)
    url = Column(Text, nullable=False, unique=True)
    canonical_url = Column(Text, nullable=True, index=True)
    image = Column(Text, nullable=True)
    ratio = Column(Float, nullable=True)
    placeholder = Column(Text, nullable=True)
    source_id = Column(String(64), ForeignKey("sources.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(String(64), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    metadata_changed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    score = Column(Integer, nullable=False, default=0, server_default=text("0"), index=True)
    tags_str = Column(Text, nullable=True)  # allowed keywords, comma-joined
    read_time = Column(Integer, nullable=True)  # minutes
    description = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    toc = Column(JSON, nullable=True)
    site_twitter = Column(String(64), nullable=True)
    creator_twitter = Column(String(64), nullable=True)
    deleted = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    banned = Column(Boolean, nullable=False, default=False, server_default=text("false"))
