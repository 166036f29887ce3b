#!/usr/bin/env python3
"""
Yamerito -- command-line entry point.

Usage:
  python main.py migrate          create the schema; seed an admin if configured
  python main.py hash-password    print an encoded Argon2id credential
  python main.py serve            run the API with uvicorn

Environment variables (also read from .env):
  JWT_SECRET_KEY        Required by `serve`. At least 32 characters.
  DATABASE_URL          SQLAlchemy URL (default: sqlite:///./yamerito.db)
  SEED_ADMIN_USERNAME   With SEED_ADMIN_PASSWORD, `migrate` creates this ADMIN
  SEED_ADMIN_PASSWORD   account if it does not exist yet.
"""

import argparse
import getpass
import sys

from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from core.config import get_settings

_MIN_PASSWORD = 8
_MAX_PASSWORD = 72


def _password_problem(password: str) -> str | None:
    if len(password) < _MIN_PASSWORD:
        return f"Password must be at least {_MIN_PASSWORD} characters."
    if len(password) > _MAX_PASSWORD:
        return f"Password must be at most {_MAX_PASSWORD} characters."
    return None


def migrate() -> int:
    """Create tables, then seed the configured admin account once."""
    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        print(f"  Schema ready ({settings.database_url.split('://', 1)[0]}).")
        if not settings.seed_admin_configured:
            print("  SEED_ADMIN_USERNAME/SEED_ADMIN_PASSWORD not set -- no admin seeded.")
            return 0
        username = settings.seed_admin_username.strip()
        if store.get_by_username(username) is not None:
            print(f"  User '{username}' already exists -- nothing to seed.")
            return 0
        problem = _password_problem(settings.seed_admin_password)
        if problem:
            print(f"  [!] SEED_ADMIN_PASSWORD rejected: {problem}")
            return 1
        store.create_user(
            User(
                username=username,
                role=Role.ADMIN,
                hashed_password=hash_password(settings.seed_admin_password),
            )
        )
        print(f"  Admin '{username}' created.")
        return 0
    finally:
        store.close()


def hash_password_cmd() -> int:
    """Prompt for a password twice and print its encoded credential."""
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat: "):
        print("  [!] Passwords do not match.")
        return 1
    problem = _password_problem(password)
    if problem:
        print(f"  [!] {problem}")
        return 1
    print(hash_password(password))
    return 0


def serve() -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=settings.api_server_host,
        port=settings.api_server_port,
        reload=settings.debug,
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="yamerito",
        description="Yamerito authentication and employee management backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  SEED_ADMIN_USERNAME=admin SEED_ADMIN_PASSWORD='...' python main.py migrate
  python main.py hash-password
  JWT_SECRET_KEY=... python main.py serve
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")
    sub.add_parser("migrate", help="Create the database schema and seed the configured admin")
    sub.add_parser("hash-password", help="Print an encoded Argon2id credential for a password")
    sub.add_parser("serve", help="Run the HTTP API")
    args = parser.parse_args()

    commands = {
        "migrate": migrate,
        "hash-password": hash_password_cmd,
        "serve": serve,
    }
    sys.exit(commands[args.command]())


if __name__ == "__main__":
    main()
