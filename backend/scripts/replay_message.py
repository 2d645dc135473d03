#!/usr/bin/env python3
"""Run one queue message through its worker without the queue (debugging ingestion).
Run from backend: python scripts/replay_message.py <subscription> <message.json>
"""
import sys
from pathlib import Path

# Ensure backend is on path when run as script
backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from app.db.session import SessionLocal
from app.workers import handle_message, list_subscriptions


def main():
    if len(sys.argv) != 3:
        print(f"Usage: {sys.argv[0]} <subscription> <message.json>", file=sys.stderr)
        print(f"Subscriptions: {', '.join(list_subscriptions())}", file=sys.stderr)
        sys.exit(2)
    subscription, path = sys.argv[1], sys.argv[2]
    db = SessionLocal()
    try:
        result = handle_message(db, subscription, Path(path).read_bytes())
        print(f"{subscription}: {result!r}")
    except KeyError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
