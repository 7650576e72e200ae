"""Shared fixtures for the ServerReport test suite."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from server_report.config import Settings
from server_report.identity import IdentityLinker
from server_report.models import UserRole
from server_report.service import ReportService
from server_report.state import ReportState


class TickingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def settings() -> Settings:
    return Settings.from_dict({})


@pytest.fixture
def state(tmp_path) -> ReportState:
    return ReportState(tmp_path / "reports.db", clock=TickingClock())


@pytest.fixture
def service(state, settings) -> ReportService:
    return ReportService(state, settings)


@pytest.fixture
def linker(state) -> IdentityLinker:
    return IdentityLinker(state)


@pytest.fixture
def alice(state):
    return state.create_user("alice", "alice@example.com")


@pytest.fixture
def bob(state):
    return state.create_user("bob", "bob@example.com")


@pytest.fixture
def admin(state):
    return state.create_user("root", "root@example.com", role=UserRole.ADMIN)
