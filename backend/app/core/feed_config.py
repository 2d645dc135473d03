"""
Feed workload config. .env is the source of truth; these defaults apply only when
the env var is unset. All values read at import time.

Env vars: FEED_CACHE_STALE_MINUTES, FEED_FRESH_PAGE_RATIO, FEED_DEFAULT_PAGE_SIZE,
FEED_MAX_PAGE_SIZE, FEED_RANDOM_PAGE_SIZE.
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load backend/.env so feed config sees env vars regardless of entry point
# (scripts, tests and workers import this without going through main.py)
_backend_dir = Path(__file__).resolve().parent.parent.parent
load_dotenv(_backend_dir / ".env", override=False)  # no-op if file missing

_log = logging.getLogger(__name__)


def _int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = os.environ.get(key)
    if raw is None:
        v = default
    else:
        try:
            v = int(raw.strip())
        except ValueError:
            v = default
    if min_val is not None and v < min_val:
        v = min_val
    if max_val is not None and v > max_val:
        v = max_val
    return v


def _float(key: str, default: float, min_val: float, max_val: float) -> float:
    raw = os.environ.get(key)
    try:
        v = float(raw.strip()) if raw is not None else default
    except ValueError:
        v = default
    return min(max(v, min_val), max_val)


# -----------------------------------------------------------------------------
# Personalized feed cache
# -----------------------------------------------------------------------------
# Cached rankings older than this are re-validated when the first page is requested.
FEED_CACHE_STALE_MINUTES = _int("FEED_CACHE_STALE_MINUTES", 30, min_val=1, max_val=24 * 60)
# Share of the requested window the ranking service must always recompute (fresh_page_size).
FEED_FRESH_PAGE_RATIO = _float("FEED_FRESH_PAGE_RATIO", 1 / 3, min_val=0.0, max_val=1.0)

# -----------------------------------------------------------------------------
# Pagination
# -----------------------------------------------------------------------------
FEED_DEFAULT_PAGE_SIZE = _int("FEED_DEFAULT_PAGE_SIZE", 30, min_val=1, max_val=100)
FEED_MAX_PAGE_SIZE = _int("FEED_MAX_PAGE_SIZE", 100, min_val=1, max_val=500)
FEED_RANDOM_PAGE_SIZE = _int("FEED_RANDOM_PAGE_SIZE", 3, min_val=1, max_val=50)

_log.info(
    "Feed config (from env): cache_stale_minutes=%s fresh_page_ratio=%s "
    "default_page_size=%s max_page_size=%s random_page_size=%s",
    FEED_CACHE_STALE_MINUTES,
    FEED_FRESH_PAGE_RATIO,
    FEED_DEFAULT_PAGE_SIZE,
    FEED_MAX_PAGE_SIZE,
    FEED_RANDOM_PAGE_SIZE,
)

