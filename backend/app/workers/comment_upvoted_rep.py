"""Comment upvoted: the comment's author gains 1 reputation, unless they upvoted themselves."""
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.comment import Comment
from app.services.reputation_service import increase_reputation

logger = logging.getLogger(__name__)


def handle_comment_upvoted_rep(db: Session, data: dict[str, Any]) -> bool:
    """Returns True when reputation was increased. Failures are logged, never raised."""
    comment_id = data.get("commentId")
    user_id = data.get("userId")
    try:
        comment = db.get(Comment, comment_id) if comment_id else None
        if not comment:
            logger.info("comment does not exist: %s", data)
            return False
        if comment.user_id == user_id:
            return False
        increased = increase_reputation(db, comment.user_id, 1)
        logger.info("increased reputation due to upvote: %s", data)
        return increased
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("failed to increase reputation due to upvote %s: %s", data, e, exc_info=True)
        return False
