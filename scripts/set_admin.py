#!/usr/bin/env python3
"""
Grant (or revoke) the admin flag, which unlocks the /admin/games endpoints.
Usage: python scripts/set_admin.py <email> [--revoke]
"""
import argparse
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from gamehub.api.database import SessionLocal, init_db
from gamehub.api.models import User


def main() -> None:
    parser = argparse.ArgumentParser(description="Grant or revoke GameHub admin rights.")
    parser.add_argument("email")
    parser.add_argument("--revoke", action="store_true", help="remove admin rights instead of granting them")
    args = parser.parse_args()

    init_db()
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == args.email.strip().lower()).first()
        if not user:
            print(f"No user found with email: {args.email!r}", file=sys.stderr)
            sys.exit(1)
        user.is_admin = not args.revoke
        db.commit()
        state = "is now" if user.is_admin else "is no longer"
        print(f"{user.username!r} ({user.email}) {state} an admin.")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
