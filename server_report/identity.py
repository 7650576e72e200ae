"""Links chat-platform accounts to internal users."""
from __future__ import annotations

import logging
from typing import Optional, Union

from .models import Integration, Platform
from .state import ReportState

logger = logging.getLogger(__name__)


class IdentityLinker:
    """Resolves Discord and Telegram accounts to integration records.

    Integrations are created on first contact but never create a user: the
    link to an internal account is established out of band (website sign-in,
    or the ``server-report-link`` tool).
    """

    class IntegrationNotFoundError(LookupError):
        """No integration exists for the platform account."""

    class IntegrationUnlinkedError(LookupError):
        """The integration exists but is not bound to a user yet."""

    def __init__(self, state: ReportState) -> None:
        self.state = state

    @staticmethod
    def _platform(platform: Union[Platform, str]) -> Platform:
        try:
            return Platform(platform)
        except ValueError as exc:
            raise ValueError(f"Unknown platform {platform!r}") from exc

    def ensure_linked(
        self,
        platform: Union[Platform, str],
        external_id: Union[int, str],
        external_username: Optional[str] = None,
    ) -> Integration:
        platform = self._platform(platform)
        integration = self.state.ensure_integration(platform, str(external_id), external_username)
        logger.debug(
            "Integration %s:%s resolved (linked=%s)",
            platform.value,
            external_id,
            integration.is_linked,
        )
        return integration

    def get(self, platform: Union[Platform, str], external_id: Union[int, str]) -> Optional[Integration]:
        return self.state.get_integration(self._platform(platform), str(external_id))

    def resolve_user_id(self, platform: Union[Platform, str], external_id: Union[int, str]) -> int:
        platform = self._platform(platform)
        integration = self.get(platform, external_id)
        if integration is None:
            raise IdentityLinker.IntegrationNotFoundError(
                f"No {platform.value} integration for {external_id}"
            )
        if integration.user_id is None:
            raise IdentityLinker.IntegrationUnlinkedError(
                f"{platform.value} account {external_id} is not linked to a user"
            )
        return integration.user_id

    def link(
        self,
        platform: Union[Platform, str],
        external_id: Union[int, str],
        user_id: int,
    ) -> Integration:
        """Bind an existing integration to an existing user."""

        platform = self._platform(platform)
        if self.state.get_user(user_id) is None:
            raise IdentityLinker.IntegrationNotFoundError(f"User {user_id} not found")
        if not self.state.link_integration(platform, str(external_id), user_id):
            raise IdentityLinker.IntegrationNotFoundError(
                f"No {platform.value} integration for {external_id}"
            )
        logger.info("Linked %s account %s to user %s", platform.value, external_id, user_id)
        integration = self.state.get_integration(platform, str(external_id))
        assert integration is not None
        return integration


__all__ = ["IdentityLinker"]
