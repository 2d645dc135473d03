"""User feed configuration: followed/blocked tags and excluded sources."""
from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint, text

from app.db.base import Base


class Feed(Base):
    __tablename__ = "feeds"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)


class FeedTag(Base):
    __tablename__ = "feed_tags"
    __table_args__ = (UniqueConstraint("feed_id", "tag", name="uq_feed_tags_feed_tag"),)

    # Surrogate id keeps insertion order, which is the order tags are sent to the ranking service
    id = Column(Integer, primary_key=True, autoincrement=True)
    feed_id = Column(String(64), ForeignKey("feeds.id", ondelete="CASCADE"), nullable=False, index=True)
    tag = Column(String(128), nullable=False)
    blocked = Column(Boolean, nullable=False, default=False, server_default=text("false"))


class FeedSource(Base):
    """Source excluded from a feed."""
    __tablename__ = "feed_sources"
    __table_args__ = (UniqueConstraint("feed_id", "source_id", name="uq_feed_sources_feed_source"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    feed_id = Column(String(64), ForeignKey("feeds.id", ondelete="CASCADE"), nullable=False, index=True)
    source_id = Column(String(64), ForeignKey("sources.id", ondelete="CASCADE"), nullable=False)
