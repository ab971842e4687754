#!/usr/bin/env python3
"""
Gatehouse -- operator command line.

Self-registration only ever creates "user" accounts. This tool is how the
first admin account gets into the store, and a quick way to inspect it.

Usage:
  python main.py create-admin --name "Ada" --email ada@example.com
  python main.py list-users
  python main.py check-role 3f2a...

Environment variables (see core/config.py):
  DATABASE_URL   Store location. Defaults to auth/gatehouse_auth.db.
  SECRET_KEY     Required unless DEBUG=true.
"""

from __future__ import annotations

import argparse
import getpass
from typing import Optional

from auth.errors import AuthError, ValidationError
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings


def _build_service(store: UserStore) -> AuthService:
    settings = get_settings()
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds, max_length=settings.password_max_length)
    tokens = TokenService(
        settings.secret_key,
        default_ttl=settings.token_expire_seconds,
        issuer=settings.token_issuer,
    )
    return AuthService(store, hasher, tokens)


def _open_store() -> UserStore:
    settings = get_settings()
    return UserStore(settings.database_url) if settings.database_url else UserStore()


def _read_password() -> str:
    """Prompt twice without echo. Returns "" when the two entries differ."""
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Confirm password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return ""
    return first


def _report(exc: AuthError) -> None:
    print(f"  [!] {exc.message}")
    if isinstance(exc, ValidationError):
        for field, message in exc.fields.items():
            print(f"      {field}: {message}")


def cmd_create_admin(service: AuthService, args: argparse.Namespace) -> int:
    password = _read_password()
    if not password:
        return 1
    profile = service.create_admin(args.name, args.email, password)
    print(f"  Created admin {profile.email} (id {profile.id}).")
    return 0


def cmd_list_users(service: AuthService, args: argparse.Namespace) -> int:
    users = service.list_users()
    if not users:
        print("  No users.")
        return 0
    for u in users:
        print(f"  {u.id}  {u.role.value:<5}  {u.email}  {u.name}")
    print(f"\n  {len(users)} user(s).")
    return 0


def cmd_check_role(service: AuthService, args: argparse.Namespace) -> int:
    role = service.check_role(args.user_id)
    print(f"  {role.value}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="gatehouse",
        description="Operator tools for the Gatehouse user store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-admin --name "Ada" --email ada@example.com
  python main.py list-users
  python main.py check-role 3f2a9c0d1e...
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = sub.add_parser("create-admin", help="Create an admin account (password is prompted)")
    create.add_argument("--name", required=True, help="Display name")
    create.add_argument("--email", required=True, help="Login email (case-sensitive)")
    create.set_defaults(handler=cmd_create_admin)

    listing = sub.add_parser("list-users", help="List every account")
    listing.set_defaults(handler=cmd_list_users)

    check = sub.add_parser("check-role", help="Print the role of a user id")
    check.add_argument("user_id", metavar="USER-ID")
    check.set_defaults(handler=cmd_check_role)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    store = _open_store()
    try:
        return args.handler(_build_service(store), args)
    except AuthError as exc:
        _report(exc)
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    raise SystemExit(main())
