"""Input parsing and failure replies shared by the chat adapters."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from ..identity import IdentityLinker
from ..service import ReportService
from ..state import StoreUnavailableError

logger = logging.getLogger(__name__)

# Errors a chat command turns into a reply instead of letting them escape.
HANDLED_ERRORS = (
    ReportService.ValidationError,
    ReportService.NotFoundError,
    IdentityLinker.IntegrationNotFoundError,
    IdentityLinker.IntegrationUnlinkedError,
    StoreUnavailableError,
)

_REPORT_FIELDS = ("title", "description", "category", "priority")


def parse_report_fields(raw: str) -> Dict[str, Optional[str]]:
    """Split ``title | description | category | priority`` into fields.

    Missing trailing parts come back as ``None``; extra parts are folded into
    the last field rather than dropped.
    """

    parts = [part.strip() for part in raw.split("|", len(_REPORT_FIELDS) - 1)]
    fields: Dict[str, Optional[str]] = {name: None for name in _REPORT_FIELDS}
    for name, value in zip(_REPORT_FIELDS, parts):
        fields[name] = value or None
    if fields["priority"]:
        fields["priority"] = fields["priority"].lower()
    return fields


def parse_report_id(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    text = raw.strip().lstrip("#")
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def failure_message(exc: Exception, action: str, *, platform: str) -> str:
    """Render a handled error as a chat reply."""

    if isinstance(exc, ReportService.ValidationError):
        return "Invalid report: " + "; ".join(exc.errors)
    if isinstance(exc, ReportService.NotFoundError):
        return "Report not found."
    if isinstance(exc, IdentityLinker.IntegrationUnlinkedError):
        return (
            f"Your {platform} account is not linked to a ServerReport user yet. "
            "Sign in on the website to link it."
        )
    if isinstance(exc, IdentityLinker.IntegrationNotFoundError):
        return "You are not registered yet. Please use /start first."
    logger.error("Failed to %s: %s", action, exc)
    return f"Failed to {action}."


__all__ = [
    "HANDLED_ERRORS",
    "failure_message",
    "parse_report_fields",
    "parse_report_id",
]
