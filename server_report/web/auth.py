"""Request authentication for the website API."""
from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import Request

from ..models import User
from ..state import ReportState

logger = logging.getLogger(__name__)

Authenticator = Callable[[Request], Optional[User]]


def header_authenticator(state: ReportState, header: str = "X-User-Id") -> Authenticator:
    """Trust a user id placed in ``header`` by the upstream auth gateway.

    Missing or malformed ids, unknown users and users whose status is not
    ``active`` are all treated as anonymous.
    """

    def authenticate(request: Request) -> Optional[User]:
        raw = request.headers.get(header)
        if not raw:
            return None
        try:
            user_id = int(raw.strip())
        except ValueError:
            logger.warning("Ignoring malformed %s header: %r", header, raw)
            return None
        user = state.get_user(user_id)
        if user is None or user.status != "active":
            return None
        return user

    return authenticate


__all__ = ["Authenticator", "header_authenticator"]
