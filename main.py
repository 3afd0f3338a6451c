#!/usr/bin/env python3
"""
HerdWatch -- livestock health monitoring backend.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py init-db
  python main.py create-user ann@farm.io --name "Ann Smith" --role veterinarian

Environment variables (or .env):
  SECRET_KEY    Required unless DEBUG=true. At least 32 characters.
  DATABASE_URL  SQLAlchemy URL. Defaults to herdwatch.db beside the code.
"""

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from core.models import PASSWORD_MAX_BYTES, PASSWORD_MIN_LENGTH, Role


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _init_db(args: argparse.Namespace) -> int:
    """Create every table. Safe to run against an existing database."""
    from auth.store import UserStore
    from core.config import get_settings
    from herd.store import HerdStore

    user_store = UserStore()
    herd = HerdStore()
    user_store.close()
    herd.close()
    print(f"  Database ready: {get_settings().database_url}")
    return 0


def _create_user(args: argparse.Namespace) -> int:
    from auth.models import User
    from auth.store import UserStore
    from auth.tokens import hash_password

    password = args.password or getpass.getpass("  Password: ")
    if len(password) < PASSWORD_MIN_LENGTH or len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        print(
            f"  [!] Password must be at least {PASSWORD_MIN_LENGTH} characters"
            f" and at most {PASSWORD_MAX_BYTES} bytes."
        )
        return 1

    store = UserStore()
    try:
        user_id = store.create_user(
            User(email=args.email, name=args.name, role=args.role, hashed_password=hash_password(password))
        )
    except IntegrityError:
        print(f"  [!] An account for '{args.email}' already exists.")
        return 1
    finally:
        store.close()
    print(f"  Created {args.role} account {args.email.lower()} (id {user_id}).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="herdwatch",
        description="Livestock health monitoring API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py init-db
  python main.py create-user vet@farm.io --role veterinarian
  DATABASE_URL=postgresql://herd:pw@db/herdwatch python main.py init-db
        """,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = subparsers.add_parser("serve", help="Run the API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    serve.set_defaults(func=_serve)

    init_db = subparsers.add_parser("init-db", help="Create the database tables")
    init_db.set_defaults(func=_init_db)

    create_user = subparsers.add_parser("create-user", help="Create an account from the command line")
    create_user.add_argument("email", help="Login email")
    create_user.add_argument("--name", default=None, help="Display name")
    create_user.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.farmer.value,
        help="Account role (default: farmer)",
    )
    create_user.add_argument(
        "--password",
        default=None,
        help="Password. Prompted for when omitted, which keeps it out of shell history.",
    )
    create_user.set_defaults(func=_create_user)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
