"""
Registry of queue workers: subscription name -> handler(db, data).

Subscription/ack mechanics belong to the queue client; this module only decodes the
message body and dispatches it.
"""
import json
import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.core.constants import COMMENT_UPVOTED_REP_SUBSCRIPTION, NEW_POST_SUBSCRIPTION
from app.workers.comment_upvoted_rep import handle_comment_upvoted_rep
from app.workers.new_post import handle_new_post

logger = logging.getLogger(__name__)

WorkerHandler = Callable[[Session, dict[str, Any]], Any]

_workers: dict[str, WorkerHandler] = {
    NEW_POST_SUBSCRIPTION: handle_new_post,
    COMMENT_UPVOTED_REP_SUBSCRIPTION: handle_comment_upvoted_rep,
}


def get_worker(subscription: str) -> WorkerHandler:
    """Get handler by subscription. Raises KeyError if unknown."""
    if subscription not in _workers:
        raise KeyError(f"Unknown subscription: {subscription}. Available: {list(_workers.keys())}")
    return _workers[subscription]


def list_subscriptions() -> list[str]:
    return list(_workers.keys())


def message_to_json(body: bytes | str) -> dict[str, Any]:
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("Message body must be a JSON object")
    return data


def handle_message(db: Session, subscription: str, body: bytes | str) -> Any:
    """Decode and dispatch one message. Undecodable bodies are logged and dropped."""
    handler = get_worker(subscription)
    try:
        data = message_to_json(body)
    except ValueError as e:
        logger.warning("Dropping undecodable message on %s: %s", subscription, e)
        return None
    return handler(db, data)
