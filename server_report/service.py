"""High-level report service shared by every front end."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Type, TypeVar

from .config import Settings, get_settings
from .models import Platform, Report, ReportPriority, ReportSource, ReportStatus, User
from .state import ReportState

logger = logging.getLogger(__name__)

_E = TypeVar("_E", ReportPriority, ReportStatus, ReportSource)


class ReportService:
    """Owner-scoped report CRUD plus the admin operations."""

    class ValidationError(ValueError):
        """Raised when input breaks a report rule."""

        def __init__(self, errors: Iterable[str]) -> None:
            self.errors = list(errors)
            super().__init__("; ".join(self.errors))

    class NotFoundError(LookupError):
        """Raised when a record is missing or owned by someone else."""

    def __init__(self, state: ReportState, settings: Optional[Settings] = None) -> None:
        self.state = state
        self.settings = settings or get_settings()

    # Validation --------------------------------------------------------
    @staticmethod
    def _coerce(enum_type: Type[_E], value: object, field: str, errors: List[str]) -> Optional[_E]:
        if value is None:
            return None
        try:
            return enum_type(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_type)
            errors.append(f"{field} must be one of: {allowed}")
            return None

    def validation_errors(
        self,
        title: Optional[str] = None,
        description: Optional[str] = None,
    ) -> List[str]:
        """Length problems with the given title/description (``None`` skips a field)."""

        errors: List[str] = []
        if title is not None and len(title) < self.settings.title_min_length:
            errors.append(
                f"Title must be at least {self.settings.title_min_length} characters"
            )
        if description is not None and len(description) < self.settings.description_min_length:
            errors.append(
                f"Description must be at least {self.settings.description_min_length} characters"
            )
        return errors

    @staticmethod
    def _clean(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip()

    # Owner operations --------------------------------------------------
    def create(
        self,
        user_id: int,
        title: str,
        description: str,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        source: Optional[str] = ReportSource.WEBSITE.value,
    ) -> Report:
        errors: List[str] = []
        title = self._clean(title) or ""
        description = self._clean(description) or ""
        errors.extend(self.validation_errors(title, description))
        level = self._coerce(ReportPriority, priority, "priority", errors)
        origin = self._coerce(ReportSource, source, "source", errors)
        if errors:
            raise ReportService.ValidationError(errors)

        report = self.state.insert_report(
            user_id=user_id,
            title=title,
            description=description,
            category=self._clean(category) or None,
            priority=level or ReportPriority.MEDIUM,
            status=ReportStatus.OPEN,
            source=origin or ReportSource.WEBSITE,
        )
        logger.info(
            "Report %s created by user %s via %s", report.id, user_id, report.source.value
        )
        return report

    def get_by_id(self, report_id: int, requesting_user_id: Optional[int] = None) -> Report:
        report = self.state.get_report(report_id, requesting_user_id)
        if report is None:
            raise ReportService.NotFoundError("Report not found")
        return report

    def list_by_user(self, user_id: int, limit: Optional[int] = None) -> List[Report]:
        return self.state.list_reports_for_user(user_id, limit=limit)

    def update(
        self,
        report_id: int,
        user_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
        priority: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Report:
        errors: List[str] = []
        title = self._clean(title)
        description = self._clean(description)
        errors.extend(self.validation_errors(title, description))
        level = self._coerce(ReportPriority, priority, "priority", errors)
        state = self._coerce(ReportStatus, status, "status", errors)
        if errors:
            raise ReportService.ValidationError(errors)

        report = self.state.update_report(
            report_id,
            user_id,
            title=title,
            description=description,
            category=self._clean(category),
            priority=level,
            status=state,
        )
        if report is None:
            raise ReportService.NotFoundError("Report not found")
        return report

    def delete(self, report_id: int, user_id: int) -> None:
        if not self.state.delete_report(report_id, user_id):
            raise ReportService.NotFoundError("Report not found")
        logger.info("Report %s deleted by user %s", report_id, user_id)

    # Admin operations --------------------------------------------------
    def list_users(self) -> List[User]:
        return self.state.list_users()

    def get_user(self, user_id: int) -> User:
        user = self.state.get_user(user_id)
        if user is None:
            raise ReportService.NotFoundError("User not found")
        return user

    def list_user_reports(self, user_id: int) -> List[Report]:
        return self.state.list_reports_for_user(user_id)

    def list_filtered(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> List[Report]:
        errors: List[str] = []
        state = self._coerce(ReportStatus, status or None, "status", errors)
        level = self._coerce(ReportPriority, priority or None, "priority", errors)
        if errors:
            raise ReportService.ValidationError(errors)
        return self.state.list_reports(status=state, priority=level)

    def admin_update_status(self, report_id: int, status: Optional[str]) -> Report:
        """Set any report's status. Any transition between states is allowed."""

        errors: List[str] = []
        new_status = self._coerce(ReportStatus, status, "status", errors)
        if new_status is None:
            raise ReportService.ValidationError(errors or ["Invalid status"])
        report = self.state.update_report_status(report_id, new_status)
        if report is None:
            raise ReportService.NotFoundError("Report not found")
        logger.info("Report %s moved to %s by admin", report_id, new_status.value)
        return report

    def aggregate_stats(self) -> Dict[str, int]:
        """Return dashboard counts.

        The five counts are separate reads with no transaction around them, so
        they can disagree with each other while writes are in flight.
        """

        return {
            "totalUsers": self.state.count_users(),
            "totalReports": self.state.count_reports(),
            "openReports": self.state.count_reports(ReportStatus.OPEN),
            "discordIntegrations": self.state.count_integrations(Platform.DISCORD),
            "telegramIntegrations": self.state.count_integrations(Platform.TELEGRAM),
        }


__all__ = ["ReportService"]
