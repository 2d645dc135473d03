"""Publisher of posts. Inactive sources are hidden from every feed."""
from sqlalchemy import Boolean, Column, DateTime, String, text
from sqlalchemy.sql import func

from app.db.base import Base


class Source(Base):
    __tablename__ = "sources"

    id = Column(String(64), primary_key=True)
    name = Column(String(256), nullable=False)
    image = Column(String(512), nullable=True)
    active = Column(Boolean, nullable=False, default=True, server_default=text("true"))
    private = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
