"""Inspect and link Discord/Telegram accounts to internal users."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List, Optional

from ..config import database_path
from ..identity import IdentityLinker
from ..models import Platform
from ..state import ReportState


def _load_linker(state_db: Optional[Path]) -> IdentityLinker:
    return IdentityLinker(ReportState(state_db or database_path()))


def cmd_link(args: argparse.Namespace) -> None:
    linker = _load_linker(args.state_db)
    try:
        integration = linker.link(args.platform, args.external_id, args.user_id)
    except LookupError as exc:
        raise SystemExit(f"error: {exc}") from exc
    print(
        f"Linked {integration.platform.value} account {integration.external_user_id} "
        f"to user {integration.user_id}"
    )


def cmd_show(args: argparse.Namespace) -> None:
    linker = _load_linker(args.state_db)
    integration = linker.get(args.platform, args.external_id)
    if integration is None:
        raise SystemExit(f"error: no {args.platform} integration for {args.external_id}")
    payload = {
        "platform": integration.platform.value,
        "external_user_id": integration.external_user_id,
        "external_username": integration.external_username,
        "user_id": integration.user_id,
        "created_at": integration.created_at.isoformat() if integration.created_at else None,
    }
    if args.json:
        print(json.dumps(payload, indent=2))
        return
    lines = [f"{key}: {value}" for key, value in payload.items()]
    print("\n".join(lines))


def cmd_stats(args: argparse.Namespace) -> None:
    state = ReportState(args.state_db or database_path())
    counts = {platform.value: state.count_integrations(platform) for platform in Platform}
    if args.json:
        print(json.dumps(counts, indent=2))
        return
    print("Integrations:")
    for name, count in sorted(counts.items()):
        print(f"  - {name}: {count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage chat-platform account links.")
    parser.add_argument(
        "--state-db",
        type=Path,
        default=None,
        help="Path to the report SQLite database (default: $SERVER_REPORT_DB or server_report.db).",
    )
    platforms = [platform.value for platform in Platform]

    subparsers = parser.add_subparsers(dest="command", required=True)

    link = subparsers.add_parser("link", help="Bind a registered account to a user.")
    link.add_argument("platform", choices=platforms)
    link.add_argument("external_id", help="Discord or Telegram user id.")
    link.add_argument("user_id", type=int, help="Internal user id.")
    link.set_defaults(func=cmd_link)

    show = subparsers.add_parser("show", help="Show one registered account.")
    show.add_argument("platform", choices=platforms)
    show.add_argument("external_id")
    show.add_argument("--json", action="store_true", help="Output JSON for automation.")
    show.set_defaults(func=cmd_show)

    stats = subparsers.add_parser("stats", help="Count registered accounts per platform.")
    stats.add_argument("--json", action="store_true", help="Output JSON for automation.")
    stats.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
