"""Telegram command handlers.

Each function maps one command onto the linker/service and returns the
Markdown reply text; :mod:`.bot` only wires them into python-telegram-bot.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Union

from ...identity import IdentityLinker
from ...models import Platform, ReportSource
from ...service import ReportService
from ..common import HANDLED_ERRORS, failure_message, parse_report_fields, parse_report_id
from .formatting import format_report_created, format_report_list, format_report_status, md

logger = logging.getLogger(__name__)

_COMMANDS = (
    "📝 /report - Create a new report\n"
    "📊 /status <id> - Check report status\n"
    "📚 /list - List your reports\n"
    "❓ /help - Show help"
)
WELCOME_TEXT = "Welcome to ServerReport Bot! 📋\n\nCommands:\n" + _COMMANDS
HELP_TEXT = "ServerReport Bot Help 📖\n\n" + _COMMANDS
STATUS_USAGE = "Please provide a report ID. Usage: /status <id>"
TITLE_PROMPT = "📝 Please send the report title."
DESCRIPTION_PROMPT = "Now describe the problem."
CATEGORY_PROMPT = "Which category does it belong to? Send /skip for none."
CANCELLED_TEXT = "Report creation cancelled."

ExternalId = Union[int, str]


def _failure(exc: Exception, action: str) -> str:
    return md(failure_message(exc, action, platform="Telegram"))


def start(linker: IdentityLinker, telegram_user_id: ExternalId, username: Optional[str]) -> str:
    try:
        linker.ensure_linked(Platform.TELEGRAM, telegram_user_id, username)
    except HANDLED_ERRORS as exc:
        logger.error("Error in start: %s", exc)
        return "An error occurred. Please try again."
    return WELCOME_TEXT


def status(
    service: ReportService,
    linker: IdentityLinker,
    telegram_user_id: ExternalId,
    args: Sequence[str],
) -> str:
    if not args:
        return STATUS_USAGE
    report_id = parse_report_id(args[0])
    if report_id is None:
        return f"{md(args[0])} is not a report ID. {STATUS_USAGE}"
    try:
        user_id = linker.resolve_user_id(Platform.TELEGRAM, telegram_user_id)
        report = service.get_by_id(report_id, requesting_user_id=user_id)
    except HANDLED_ERRORS as exc:
        return _failure(exc, "check report status")
    return format_report_status(report)


def list_reports(
    service: ReportService,
    linker: IdentityLinker,
    telegram_user_id: ExternalId,
    limit: int,
) -> str:
    try:
        user_id = linker.resolve_user_id(Platform.TELEGRAM, telegram_user_id)
        reports = service.list_by_user(user_id, limit=limit)
    except HANDLED_ERRORS as exc:
        return _failure(exc, "fetch reports")
    if not reports:
        return "You have no reports."
    return format_report_list(reports)


def begin_report(
    linker: IdentityLinker,
    telegram_user_id: ExternalId,
    username: Optional[str],
) -> Optional[str]:
    """Check the account may create reports; returns an error reply or ``None``."""

    try:
        linker.ensure_linked(Platform.TELEGRAM, telegram_user_id, username)
        linker.resolve_user_id(Platform.TELEGRAM, telegram_user_id)
    except HANDLED_ERRORS as exc:
        return _failure(exc, "create report")
    return None


def check_draft_field(service: ReportService, field: str, value: str) -> Optional[str]:
    """Validate one answer of the report conversation before moving on."""

    errors: List[str] = service.validation_errors(**{field: value.strip()})
    if errors:
        return md("; ".join(errors)) + "\nPlease try again."
    return None


def create_report(
    service: ReportService,
    linker: IdentityLinker,
    telegram_user_id: ExternalId,
    fields: Dict[str, Optional[str]],
) -> str:
    try:
        user_id = linker.resolve_user_id(Platform.TELEGRAM, telegram_user_id)
        report = service.create(
            user_id,
            title=fields.get("title") or "",
            description=fields.get("description") or "",
            category=fields.get("category"),
            priority=fields.get("priority"),
            source=ReportSource.TELEGRAM.value,
        )
    except HANDLED_ERRORS as exc:
        return _failure(exc, "create report")
    return format_report_created(report)


def create_inline_report(
    service: ReportService,
    linker: IdentityLinker,
    telegram_user_id: ExternalId,
    username: Optional[str],
    args: Sequence[str],
) -> str:
    """Handle ``/report title | description | category`` in one message."""

    error = begin_report(linker, telegram_user_id, username)
    if error is not None:
        return error
    return create_report(service, linker, telegram_user_id, parse_report_fields(" ".join(args)))


__all__ = [
    "CANCELLED_TEXT",
    "CATEGORY_PROMPT",
    "DESCRIPTION_PROMPT",
    "HELP_TEXT",
    "STATUS_USAGE",
    "TITLE_PROMPT",
    "WELCOME_TEXT",
    "begin_report",
    "check_draft_field",
    "create_inline_report",
    "create_report",
    "list_reports",
    "start",
    "status",
]
