"""Markdown rendering for Telegram replies.

All replies are sent with the legacy ``Markdown`` parse mode, so every piece
of user supplied text goes through :func:`md`.
"""

from __future__ import annotations

from typing import Iterable, List

from telegram.helpers import escape_markdown

from ...models import Report

_STATUS_ICONS = {
    "open": "🟢",
    "in_progress": "🟡",
    "resolved": "✅",
    "closed": "⚪",
}


def md(text: object) -> str:
    return escape_markdown(str(text), version=1)


def format_report_status(report: Report) -> str:
    lines = [
        "*Report Status*",
        "",
        f"*Title:* {md(report.title)}",
        f"*Status:* {md(report.status.value)}",
        f"*Priority:* {md(report.priority.value)}",
        f"*Category:* {md(report.category or 'N/A')}",
        f"*Created:* {report.created_at.strftime('%Y-%m-%d %H:%M UTC')}",
    ]
    return "\n".join(lines)


def format_report_list(reports: Iterable[Report]) -> str:
    lines: List[str] = ["*Your Reports:*", ""]
    for report in reports:
        icon = _STATUS_ICONS.get(report.status.value, "📋")
        lines.append(f"{icon} [{report.id}] {md(report.title)} - *{md(report.status.value)}*")
    return "\n".join(lines)


def format_report_created(report: Report) -> str:
    return "\n".join(
        [
            f"✅ Report *#{report.id}* created.",
            "",
            f"*Title:* {md(report.title)}",
            f"*Priority:* {md(report.priority.value)}",
            f"*Category:* {md(report.category or 'N/A')}",
            f"Check it later with /status {report.id}",
        ]
    )


__all__ = [
    "format_report_created",
    "format_report_list",
    "format_report_status",
    "md",
]
