"""Discord command handlers and formatting utilities.

Handlers are plain functions returning a :class:`Reply`, so the command
wiring in :mod:`.bot` stays thin and the behaviour is testable without a
gateway connection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import discord

from ...identity import IdentityLinker
from ...models import Platform, ReportSource
from ...service import ReportService
from ..common import HANDLED_ERRORS, failure_message, parse_report_fields, parse_report_id
from .builders import build_report_embed

logger = logging.getLogger(__name__)

_MAX_MESSAGE_LENGTH = 1900

REPORT_USAGE = (
    "📝 Please provide the report details:\n"
    "`!report <title> | <description> | <category (optional)> | <priority (optional)>`\n"
    "Priority is one of low, medium, high or critical."
)
STATUS_USAGE = "Please provide a report ID. Usage: `!status <report_id>`"


@dataclass
class Reply:
    """Content and/or embed to send back to the invoking channel."""

    content: Optional[str] = None
    embed: Optional[discord.Embed] = None


def _clamp_text(text: str) -> str:
    """Ensure Discord-compatible message length."""

    if len(text) <= _MAX_MESSAGE_LENGTH:
        return text
    return text[: _MAX_MESSAGE_LENGTH - 1].rstrip() + "…"


def _format_message(lines: Iterable[str]) -> str:
    """Join message lines and clamp to Discord limits."""

    message = "\n".join(line for line in lines if line is not None)
    return _clamp_text(message)


def handle_report(
    service: ReportService,
    linker: IdentityLinker,
    author_id: Union[int, str],
    author_name: Optional[str],
    raw_args: str,
) -> Reply:
    """Register the author and create a report from ``!report`` arguments."""

    try:
        linker.ensure_linked(Platform.DISCORD, author_id, author_name)
        if not raw_args.strip():
            return Reply(content=REPORT_USAGE)
        fields = parse_report_fields(raw_args)
        user_id = linker.resolve_user_id(Platform.DISCORD, author_id)
        report = service.create(
            user_id,
            title=fields["title"] or "",
            description=fields["description"] or "",
            category=fields["category"],
            priority=fields["priority"],
            source=ReportSource.DISCORD.value,
        )
    except HANDLED_ERRORS as exc:
        logger.info("Discord report from %s not created: %s", author_id, exc)
        return Reply(content=_clamp_text(failure_message(exc, "create report", platform="Discord")))
    return Reply(
        content=f"✅ Report #{report.id} created.",
        embed=build_report_embed(report),
    )


def handle_status(
    service: ReportService,
    linker: IdentityLinker,
    author_id: Union[int, str],
    author_name: Optional[str],
    raw_args: str,
) -> Reply:
    """Look up one of the author's reports for ``!status <id>``."""

    args = raw_args.split()
    if not args:
        return Reply(content=STATUS_USAGE)
    report_id = parse_report_id(args[0])
    if report_id is None:
        return Reply(content=_format_message([f"`{args[0]}` is not a report ID.", STATUS_USAGE]))
    try:
        linker.ensure_linked(Platform.DISCORD, author_id, author_name)
        user_id = linker.resolve_user_id(Platform.DISCORD, author_id)
        report = service.get_by_id(report_id, requesting_user_id=user_id)
    except HANDLED_ERRORS as exc:
        return Reply(content=failure_message(exc, "check report status", platform="Discord"))
    return Reply(embed=build_report_embed(report))


__all__ = [
    "REPORT_USAGE",
    "STATUS_USAGE",
    "Reply",
    "handle_report",
    "handle_status",
]
