#!/usr/bin/env python3
"""
Yearbook -- administrative command line.

Usage:
  python main.py serve [--host 0.0.0.0] [--port 3000] [--reload]
  python main.py init-db
  python main.py create-user alice@example.com
  python main.py delete-user alice@example.com
  python main.py purge-sessions

Environment variables (see core/config.py):
  DATABASE_URL     Required. e.g. postgresql+psycopg://user:pw@host/yearbook
  SESSION_SECRET   Required unless DEBUG=true. At least 32 characters.
"""

import argparse
import getpass
import sys

from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings
from core.database import Database
from core.errors import AppError


def _open_db() -> Database:
    settings = get_settings()
    db = Database(settings.database_url, pool_size=settings.db_pool_size, pool_timeout=settings.db_pool_timeout)
    db.create_schema()
    return db


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    db = _open_db()
    db.close()
    print("Database schema is up to date.")
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1
    db = _open_db()
    try:
        user_id = UserStore(db, bcrypt_rounds=get_settings().bcrypt_rounds).create_user(args.email, password)
    finally:
        db.close()
    print(f"Created user {args.email} (id={user_id}).")
    return 0


def cmd_delete_user(args: argparse.Namespace) -> int:
    db = _open_db()
    try:
        store = UserStore(db)
        user = store.get_by_email(args.email)
        if user is None:
            print(f"  [!] No user with email {args.email}.")
            return 1
        store.delete_user(user.id)
    finally:
        db.close()
    print(f"Deleted user {args.email} with all entries and sessions.")
    return 0


def cmd_purge_sessions(args: argparse.Namespace) -> int:
    settings = get_settings()
    db = _open_db()
    try:
        removed = SessionStore(db, secret=settings.session_secret, max_age=settings.session_max_age).purge_expired()
    finally:
        db.close()
    print(f"Removed {removed} expired session(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yearbook",
        description="Yearbook service administration.",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=3000, help="Port (default: 3000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=cmd_serve)

    init_db = sub.add_parser("init-db", help="Create any missing tables")
    init_db.set_defaults(func=cmd_init_db)

    create_user = sub.add_parser("create-user", help="Create a user (password is prompted)")
    create_user.add_argument("email")
    create_user.set_defaults(func=cmd_create_user)

    delete_user = sub.add_parser("delete-user", help="Delete a user and everything they own")
    delete_user.add_argument("email")
    delete_user.set_defaults(func=cmd_delete_user)

    purge = sub.add_parser("purge-sessions", help="Delete expired sessions")
    purge.set_defaults(func=cmd_purge_sessions)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except AppError as exc:
        print(f"  [!] {exc.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
