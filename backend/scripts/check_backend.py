#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from backend/:
  python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        errors.append("backend/.env missing. Set DATABASE_URL, REDIS_URL, RANKING_SERVICE_URL, RANKING_SERVICE_TOKEN.")
    else:
        print("OK  .env exists")

    # 2) DB connection
    try:
        from sqlalchemy import text
        from app.db.session import engine
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 3) Redis (personalized feed cache)
    try:
        import redis
        from app.config import settings
        redis.from_url(settings.redis_url, decode_responses=True).ping()
        print("OK  Redis connection (REDIS_URL)")
    except Exception as e:
        errors.append(f"Redis: {e}")
        print("FAIL Redis:", e)

    # 4) Ranking service token
    from app.config import settings
    if not settings.ranking_service_token:
        errors.append("RANKING_SERVICE_TOKEN is empty; personalized feeds will be rejected by the ranking service.")
        print("FAIL Ranking service token not set")
    else:
        print("OK  Ranking service configured:", settings.ranking_service_url)

    # 5) App import (catches missing deps, bad imports)
    try:
        from app.main import app  # noqa: F401
        print("OK  App import (app.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        print("\nThen start backend: uvicorn app.main:app --reload --port 8000  (from backend/)")
        return 1

    print("\nAll checks passed. Start with: uvicorn app.main:app --reload --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
