#!/usr/bin/env python3
"""
CLI tool to manage the admin allowlist directly in the database.

Usage:
    python tools/manage_admins.py list
    python tools/manage_admins.py add editor@example.org --actor ops@example.org
    python tools/manage_admins.py remove editor@example.org
    python tools/manage_admins.py sync          # bootstrap_emails from settings.yaml
    python tools/manage_admins.py token editor@example.org   # dev bearer token
"""
import argparse
import sys

from sqlalchemy import select

from msarchive.audit import set_actor
from msarchive.auth import create_access_token
from msarchive.config_loader import sync_admins_to_db
from msarchive.db import SessionLocal
from msarchive.models import AdminAllowlistEntry


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="CLI: manage the MS Archive admin allowlist.")
    parser.add_argument("--actor", "-a", default="cli", help="Recorded as added_by and in the audit log")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List allowlisted emails")
    add = sub.add_parser("add", help="Add an email to the allowlist")
    add.add_argument("email")
    remove = sub.add_parser("remove", help="Remove an email from the allowlist")
    remove.add_argument("email")
    sub.add_parser("sync", help="Insert bootstrap_emails from the settings file")
    token = sub.add_parser("token", help="Print a signed bearer token (needs AUTH_JWT_SECRET)")
    token.add_argument("email")
    token.add_argument("--minutes", "-m", type=int, default=60, help="Token lifetime in minutes")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    if args.command == "token":
        print(create_access_token(args.email.strip().lower(), expires_in_minutes=args.minutes))
        return 0

    db = SessionLocal()
    set_actor(db, args.actor)
    try:
        if args.command == "list":
            rows = db.execute(select(AdminAllowlistEntry).order_by(AdminAllowlistEntry.email)).scalars().all()
            if not rows:
                print("[manage_admins] Allowlist is empty.")
            for entry in rows:
                print(f"{entry.email:40}  added_by={entry.added_by or '-':20}  created_at={entry.created_at}")
            return 0

        if args.command == "sync":
            count = sync_admins_to_db(db)
            print(f"[manage_admins] Synced {count} bootstrap admin(s).")
            return 0

        email = args.email.strip().lower()
        existing = db.get(AdminAllowlistEntry, email)

        if args.command == "add":
            if existing:
                print(f"[manage_admins] {email} is already an admin.")
                return 1
            db.add(AdminAllowlistEntry(email=email, added_by=args.actor))
            db.commit()
            print(f"[manage_admins] Added {email}.")
            return 0

        if existing is None:
            print(f"[manage_admins] {email} is not on the allowlist.")
            return 1
        db.delete(existing)
        db.commit()
        print(f"[manage_admins] Removed {email}.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
