"""Registered user. twitter is used to match ingested posts to their author."""
from sqlalchemy import Column, Integer, String, text

from app.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(String(256), nullable=False)
    image = Column(String(512), nullable=True)
    username = Column(String(64), nullable=True, unique=True)
    twitter = Column(String(64), nullable=True, unique=True)
    reputation = Column(Integer, nullable=False, default=10, server_default=text("10"))
