"""User reputation changes triggered by activity on their content."""
import logging

from sqlalchemy.orm import Session

from app.models.user import User

logger = logging.getLogger(__name__)


def increase_reputation(db: Session, user_id: str, delta: int) -> bool:
    """Add delta to the user's reputation in one UPDATE. False if the user does not exist."""
    updated = (
        db.query(User)
        .filter(User.id == user_id)
        .update({User.reputation: User.reputation + delta}, synchronize_session=False)
    )
    db.commit()
    if not updated:
        logger.info("increase_reputation: user %s not found", user_id)
    return bool(updated)
