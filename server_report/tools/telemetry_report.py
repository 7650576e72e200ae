"""Summarise bot command telemetry recorded by the Discord and Telegram adapters."""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import List, Optional

from ..models import Platform
from ..telemetry import TelemetryCollector


def cmd_stats(args: argparse.Namespace) -> None:
    stats = TelemetryCollector(args.telemetry_db).get_command_stats(platform=args.platform)
    if args.json:
        print(json.dumps(stats, indent=2))
        return
    if not stats:
        print("No commands recorded.")
        return
    print("Commands:")
    for name, row in sorted(stats.items()):
        avg = row["avg_duration_ms"]
        avg_text = f"{avg:.1f}ms" if avg is not None else "n/a"
        rate = row["success_rate"]
        rate_text = f"{rate:.0%}" if rate is not None else "n/a"
        print(
            f"  - {name}: {row['usage_count']} uses, "
            f"{rate_text} ok, {row['unique_users']} users, avg {avg_text}"
        )


def cmd_errors(args: argparse.Namespace) -> None:
    errors = TelemetryCollector(args.telemetry_db).get_error_summary(
        hours=args.hours, platform=args.platform
    )
    if args.json:
        print(json.dumps(errors, indent=2))
        return
    if not errors:
        print(f"No errors in the last {args.hours}h.")
        return
    print(f"Errors in the last {args.hours}h:")
    for name, count in sorted(errors.items(), key=lambda item: (-item[1], item[0])):
        print(f"  - {name}: {count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Report on bot command telemetry.")
    parser.add_argument(
        "--telemetry-db",
        type=Path,
        default=None,
        help="Path to the telemetry SQLite database "
        "(default: $SERVER_REPORT_TELEMETRY_DB or telemetry.db).",
    )
    platforms = [platform.value for platform in Platform]

    subparsers = parser.add_subparsers(dest="command", required=True)

    stats = subparsers.add_parser("stats", help="Usage and success rate per command.")
    stats.add_argument("--platform", choices=platforms, default=None)
    stats.add_argument("--json", action="store_true", help="Output JSON for automation.")
    stats.set_defaults(func=cmd_stats)

    errors = subparsers.add_parser("errors", help="Error counts by type.")
    errors.add_argument("--hours", type=int, default=24, help="Look-back window (default: 24).")
    errors.add_argument("--platform", choices=platforms, default=None)
    errors.add_argument("--json", action="store_true", help="Output JSON for automation.")
    errors.set_defaults(func=cmd_errors)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
