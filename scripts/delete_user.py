#!/usr/bin/env python3
"""
Delete a user by email, with their tokens, statistics, history, relationships and chats.
Usage: python scripts/delete_user.py <email>
From repo root with PYTHONPATH=. (or after pip install -e .)
"""
import sys
import os

# Allow running from repo root without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from gamehub.api import storage
from gamehub.api.database import SessionLocal
from gamehub.api.models import User
from gamehub.core.accounts import delete_account


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python scripts/delete_user.py <email>", file=sys.stderr)
        sys.exit(1)
    email = sys.argv[1].strip().lower()
    if not email:
        print("Error: provide an email.", file=sys.stderr)
        sys.exit(1)

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if not user:
            print(f"No user found with email: {email!r}")
            return
        username = user.username
        avatar_path = user.avatar_path
        counts = delete_account(db, user)
        storage.delete_file(avatar_path)
        print(f"Deleted user {username!r} ({email}): {counts}")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
