#!/usr/bin/env python3
"""
Postboard -- administration CLI.

Usage:
  python main.py serve                      # run the API with uvicorn
  python main.py serve --reload
  python main.py init-db                    # create tables and the seed user
  python main.py create-user alice          # prompts for the password

Configuration comes from the environment (or .env); see core/config.py.
"""

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.passwords import hash_password
from auth.store import UserStore
from core.config import get_settings
from core.db import Database
from core.errors import InternalError


def _open_database() -> Database:
    settings = get_settings()
    db = Database(settings.resolved_database_url, timeout=settings.store_timeout_seconds)
    db.create_all()
    return db


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    settings = get_settings()
    db = _open_database()
    try:
        if settings.seed_username:
            created = UserStore(db).ensure_user(settings.seed_username, hash_password(settings.seed_password))
            state = "created" if created else "already present"
            print(f"  Seed user '{settings.seed_username}' {state}.")
        print("  Database initialized.")
    finally:
        db.close()
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    password = getpass.getpass(f"Password for {args.username}: ")
    if not password:
        print("  [!] Password must not be empty.")
        return 1
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1

    db = _open_database()
    try:
        user_id = UserStore(db).create_user(User(username=args.username, password_hash=hash_password(password)))
    except IntegrityError:
        print(f"  [!] User '{args.username}' already exists.")
        return 1
    except InternalError:
        print("  [!] Could not write to the database; see the log for details.")
        return 1
    finally:
        db.close()
    print(f"  Created user '{args.username}' (id={user_id}).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Postboard -- session-authenticated text posts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    serve.set_defaults(func=cmd_serve)

    init_db = sub.add_parser("init-db", help="Create tables and the seed user")
    init_db.set_defaults(func=cmd_init_db)

    create_user = sub.add_parser("create-user", help="Create a local user account")
    create_user.add_argument("username", help="Login name (unique, case-sensitive)")
    create_user.set_defaults(func=cmd_create_user)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
