"""Seed the report database with user accounts."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable, List, Optional

from ..config import database_path
from ..models import User, UserRole
from ..state import ReportState


def _parse_account(raw: str) -> tuple[str, str]:
    """Split ``username:email``; the email defaults to ``username@localhost``."""

    username, _, email = raw.partition(":")
    username = username.strip()
    if not username:
        raise argparse.ArgumentTypeError(f"invalid account {raw!r}")
    return username, email.strip() or f"{username}@localhost"


def seed_database(
    path: Path,
    users: Iterable[tuple[str, str]] = (),
    admins: Iterable[tuple[str, str]] = (),
) -> List[User]:
    """Create the given accounts, skipping usernames that already exist."""

    state = ReportState(path)
    created: List[User] = []
    for role, accounts in ((UserRole.USER, users), (UserRole.ADMIN, admins)):
        for username, email in accounts:
            if state.get_user_by_username(username) is not None:
                print(f"Skipping existing user {username}")
                continue
            created.append(state.create_user(username, email, role=role))
    for user in created:
        print(f"Created {user.role.value} {user.username} (id {user.id})")
    print(f"{state.count_users()} users in {path}")
    return created


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed the ServerReport database")
    parser.add_argument(
        "db",
        type=Path,
        nargs="?",
        default=None,
        help="Path to SQLite database (default: $SERVER_REPORT_DB or server_report.db)",
    )
    parser.add_argument(
        "--user",
        dest="users",
        action="append",
        type=_parse_account,
        default=[],
        metavar="NAME[:EMAIL]",
        help="Create a regular user; repeatable.",
    )
    parser.add_argument(
        "--admin",
        dest="admins",
        action="append",
        type=_parse_account,
        default=[],
        metavar="NAME[:EMAIL]",
        help="Create an admin user; repeatable.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    seed_database(args.db or database_path(), args.users, args.admins)


if __name__ == "__main__":  # pragma: no cover - CLI tool
    main()
