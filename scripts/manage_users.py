"""Utility script to manage store accounts and their api keys."""

from __future__ import annotations

import argparse
import secrets
import sys
from pathlib import Path
from uuid import uuid4

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from openstore_api.db.models import UserRecord  # noqa: E402
from openstore_api.db.session import SessionLocal  # noqa: E402
from openstore_api.security import ROLE_ADMIN, ROLE_COMMUNITY, ROLE_TRUSTED  # noqa: E402

ROLES = (ROLE_COMMUNITY, ROLE_TRUSTED, ROLE_ADMIN)


def _get_user(session, username: str) -> UserRecord | None:
    return session.query(UserRecord).filter(UserRecord.username == username).one_or_none()


def create_user(args: argparse.Namespace) -> None:
    with SessionLocal() as session:
        if _get_user(session, args.username):
            print(f"User '{args.username}' already exists.", file=sys.stderr)
            sys.exit(1)
        user = UserRecord(
            id=uuid4().hex,
            username=args.username,
            name=args.name or args.username,
            role=args.role,
            apikey=secrets.token_hex(24),
        )
        session.add(user)
        session.commit()
        print(f"Created user '{args.username}' ({args.role}) with api key {user.apikey}")


def set_role(args: argparse.Namespace) -> None:
    with SessionLocal() as session:
        user = _get_user(session, args.username)
        if not user:
            print(f"User '{args.username}' not found.", file=sys.stderr)
            sys.exit(1)
        user.role = args.role
        session.commit()
        print(f"User '{args.username}' is now {args.role}")


def rotate_key(args: argparse.Namespace) -> None:
    with SessionLocal() as session:
        user = _get_user(session, args.username)
        if not user:
            print(f"User '{args.username}' not found.", file=sys.stderr)
            sys.exit(1)
        user.apikey = secrets.token_hex(24)
        session.commit()
        print(f"New api key for '{args.username}': {user.apikey}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage store accounts.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a user with a fresh api key.")
    create.add_argument("username")
    create.add_argument("--name", default=None)
    create.add_argument("--role", choices=ROLES, default=ROLE_COMMUNITY)
    create.set_defaults(func=create_user)

    role = subparsers.add_parser("set-role", help="Change a user's role.")
    role.add_argument("username")
    role.add_argument("role", choices=ROLES)
    role.set_defaults(func=set_role)

    rotate = subparsers.add_parser("rotate-key", help="Issue a new api key.")
    rotate.add_argument("username")
    rotate.set_defaults(func=rotate_key)
    return parser


def main() -> None:
    args = build_parser().parse_args()
    args.func(args)


if __name__ == "__main__":
    main()
