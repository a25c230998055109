#!/usr/bin/env python3
"""
authgate -- maintenance commands for the auth store.

Usage:
  python main.py purge-sessions
  python main.py create-user --email admin@example.com
  python main.py create-user --email admin@example.com --password-stdin < pw.txt
  python main.py delete-user --email admin@example.com

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the auth store (default: sqlite file in the repo root).

purge-sessions is the reaper for deployments that set
SESSION_DELETE_EXPIRED_ON_READ=false and do not run the in-process purge
task: schedule it from cron or a systemd timer.
"""

import argparse
import getpass
import logging
import re
import sys
from typing import Optional

from api.models import EMAIL_PATTERN, PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH
from auth.accounts import delete_account, normalize_email, register_user
from auth.errors import ConflictFailure, HashingFailure, StorageFailure
from auth.sessions import SessionManager, SessionPolicy
from auth.store import AuthStore
from core.config import get_settings

logger = logging.getLogger("authgate.cli")


def _read_password(from_stdin: bool) -> Optional[str]:
    """Prompt twice for a password, or read one line from stdin. Returns None on mismatch."""
    if from_stdin:
        return sys.stdin.readline().rstrip("\n")
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    return first


def _cmd_purge(manager: SessionManager, args: argparse.Namespace) -> int:
    removed = manager.purge_expired()
    print(f"  Purged {removed} expired session(s).")
    return 0


def _cmd_create_user(manager: SessionManager, args: argparse.Namespace) -> int:
    email = normalize_email(args.email)
    if not re.match(EMAIL_PATTERN, email):
        print(f"  [!] '{args.email}' doesn't look like an email address.")
        return 2
    password = _read_password(args.password_stdin)
    if password is None:
        return 2
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        print(f"  [!] Password must be {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} characters.")
        return 2
    try:
        user, session = register_user(manager.store, manager, email, password)
    except ConflictFailure:
        print(f"  [!] {email} is already registered.")
        return 1
    except HashingFailure as exc:
        print(f"  [!] Could not hash password: {exc}")
        return 1
    # The CLI has no cookie to hand the session to.
    manager.invalidate(session.id)
    print(f"  Created user {user.id} ({user.email}).")
    return 0


def _cmd_delete_user(manager: SessionManager, args: argparse.Namespace) -> int:
    user = manager.store.get_user_by_email(normalize_email(args.email))
    if user is None:
        print(f"  [!] No user with email {args.email}.")
        return 1
    delete_account(manager.store, manager, user.id)
    print(f"  Deleted user {user.id} and all of their sessions.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="Maintenance commands for the authgate user and session store.",
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy URL of the auth store (default: DATABASE_URL or the bundled SQLite file)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    purge = sub.add_parser("purge-sessions", help="Delete every expired session row")
    purge.set_defaults(handler=_cmd_purge)

    create = sub.add_parser("create-user", help="Register a user without going through the API")
    create.add_argument("--email", required=True)
    create.add_argument(
        "--password-stdin",
        action="store_true",
        help="Read the password from the first line of stdin instead of prompting",
    )
    create.set_defaults(handler=_cmd_create_user)

    delete = sub.add_parser("delete-user", help="Delete a user and all of their sessions")
    delete.add_argument("--email", required=True)
    delete.set_defaults(handler=_cmd_delete_user)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    settings = get_settings()
    try:
        store = AuthStore(args.database_url or settings.database_url)
    except StorageFailure as exc:
        print(f"  [!] Could not open auth store: {exc}")
        return 1
    manager = SessionManager(store, SessionPolicy.from_settings(settings))
    try:
        return args.handler(manager, args)
    except StorageFailure as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"  [!] Auth store unavailable: {exc}")
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
