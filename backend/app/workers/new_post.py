"""
Post ingestion worker: turn a scraped-post message into a Post with its tags and keywords.

Messages are dropped (logged, not retried) when the title or url is missing, the url or
canonical url is already known, the source does not exist, or the author is banned.
Keywords are normalized (deduped, numeric-only dropped, synonyms replaced); only allowed
keywords end up in tags_str, which is what feeds display.
"""
import hashlib
import html
import logging
import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import BANNED_AUTHORS
from app.models.keyword import KEYWORD_ALLOW, KEYWORD_PENDING, KEYWORD_SYNONYM, Keyword, PostKeyword
from app.models.post import Post
from app.models.post_tag import PostTag
from app.models.source import Source
from app.models.user import User

logger = logging.getLogger(__name__)

_NUMERIC_ONLY = re.compile(r"^\d+$")


class NewPostMessage(BaseModel):
    """Message published by the scraper (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    publication_id: str
    title: str | None = None
    url: str | None = None
    canonical_url: str | None = None
    published_at: datetime | None = None
    image: str | None = None
    ratio: float | None = None
    placeholder: str | None = None
    tags: list[str] | None = None
    keywords: list[str] | None = None
    site_twitter: str | None = None
    creator_twitter: str | None = None
    read_time: float | None = None
    description: str | None = None
    summary: str | None = None
    toc: list[dict[str, Any]] | None = None


def normalize_twitter(handle: str | None) -> str | None:
    """'@Handle' -> 'Handle'; empty or bare '@' -> None."""
    if not handle:
        return None
    handle = handle.strip().lstrip("@").strip()
    return handle or None


def short_id(post_id: str) -> str:
    return hashlib.sha256(post_id.encode()).hexdigest()[:9]


def _clean_keywords(raw: list[str]) -> list[str]:
    values = (k.strip().lower() for k in raw if k)
    return list(dict.fromkeys(v for v in values if v and not _NUMERIC_ONLY.match(v)))


def merge_keywords(db: Session, raw: list[str]) -> tuple[list[str], list[str]]:
    """
    Count the message's keywords and resolve synonyms.
    Returns (keywords to link to the post, allowed keywords for tags_str), both in message order.
    """
    values = _clean_keywords(raw)
    if not values:
        return [], []
    known = {k.value: k for k in db.query(Keyword).filter(Keyword.value.in_(values)).all()}
    for value in values:
        row = known.get(value)
        if row:
            row.occurrences = (row.occurrences or 0) + 1
        else:
            row = Keyword(value=value, status=KEYWORD_PENDING, occurrences=1)
            db.add(row)
            known[value] = row

    resolved = [
        known[v].synonym if known[v].status == KEYWORD_SYNONYM and known[v].synonym else v
        for v in values
    ]
    resolved = list(dict.fromkeys(resolved))
    missing = [v for v in resolved if v not in known]
    if missing:
        known.update({k.value: k for k in db.query(Keyword).filter(Keyword.value.in_(missing)).all()})
    allowed = [v for v in resolved if v in known and known[v].status == KEYWORD_ALLOW]
    return resolved, allowed


def _url_exists(db: Session, urls: list[str]) -> bool:
    return (
        db.query(Post.id).filter(or_(Post.url.in_(urls), Post.canonical_url.in_(urls))).first()
        is not None
    )


def _match_author(db: Session, creator_twitter: str | None) -> str | None:
    """Author by twitter handle, case-insensitive. Usernames are never matched."""
    if not creator_twitter:
        return None
    row = db.query(User.id).filter(func.lower(User.twitter) == creator_twitter.lower()).first()
    return row.id if row else None


def handle_new_post(db: Session, data: dict[str, Any]) -> str | None:
    """Ingest one message. Returns the new post id, or None if the message was dropped."""
    try:
        msg = NewPostMessage.model_validate(data)
    except ValidationError as e:
        logger.info("new post: invalid message id=%s: %s", data.get("id"), e)
        return None
    if not msg.title or not msg.url:
        logger.info("new post: missing title or url, ignoring id=%s", msg.id)
        return None

    urls = [msg.url] + ([msg.canonical_url] if msg.canonical_url else [])
    if _url_exists(db, urls):
        logger.info("new post: url already exists, ignoring id=%s url=%s", msg.id, msg.url)
        return None
    if db.get(Source, msg.publication_id) is None:
        logger.warning("new post: unknown source %s, ignoring id=%s", msg.publication_id, msg.id)
        return None
    creator_twitter = normalize_twitter(msg.creator_twitter)
    if creator_twitter and creator_twitter.lower() in BANNED_AUTHORS:
        logger.info("new post: banned author %s, ignoring id=%s", creator_twitter, msg.id)
        return None

    try:
        keywords, allowed = merge_keywords(db, msg.keywords or [])
        now = datetime.now(timezone.utc)
        post = Post(
            id=msg.id,
            short_id=short_id(msg.id),
            title=html.unescape(msg.title),
            url=msg.url,
            canonical_url=msg.canonical_url,
            image=msg.image,
            ratio=msg.ratio,
            placeholder=msg.placeholder,
            source_id=msg.publication_id,
            author_id=_match_author(db, creator_twitter),
            created_at=now,
            published_at=msg.published_at,
            metadata_changed_at=now,
            score=int(now.timestamp() / 60),
            tags_str=",".join(allowed) or None,
            read_time=round(msg.read_time) if msg.read_time is not None else None,
            description=msg.description,
            summary=msg.summary,
            toc=msg.toc,
            site_twitter=normalize_twitter(msg.site_twitter),
            creator_twitter=creator_twitter,
        )
        db.add(post)
        db.flush()
        db.add_all(PostTag(post_id=post.id, tag=tag) for tag in dict.fromkeys(msg.tags or []) if tag)
        db.add_all(PostKeyword(post_id=post.id, keyword=k) for k in keywords)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("new post: failed to save id=%s: %s", msg.id, e, exc_info=True)
        return None
    logger.info("new post: saved id=%s source=%s keywords=%s", post.id, post.source_id, len(keywords))
    return post.id
