"""Tests for ReportService validation, ownership and admin operations."""
from __future__ import annotations

import pytest

from server_report.config import Settings
from server_report.models import Platform, ReportPriority, ReportSource, ReportStatus
from server_report.service import ReportService


def _create(service, user, **overrides):
    fields = dict(
        title="Server down",
        description="The main server is unreachable since noon",
    )
    fields.update(overrides)
    return service.create(user.id, **fields)


def test_create_applies_defaults(service, alice):
    report = _create(service, alice)

    assert report.status is ReportStatus.OPEN
    assert report.priority is ReportPriority.MEDIUM
    assert report.source is ReportSource.WEBSITE
    assert report.category is None
    assert report.user_id == alice.id
    assert report.created_at == report.updated_at


def test_create_strips_text_and_accepts_explicit_fields(service, alice):
    report = _create(
        service,
        alice,
        title="  Printer on fire  ",
        category=" hardware ",
        priority="critical",
        source="telegram",
    )
    assert report.title == "Printer on fire"
    assert report.category == "hardware"
    assert report.priority is ReportPriority.CRITICAL
    assert report.source is ReportSource.TELEGRAM


@pytest.mark.parametrize(
    "title, description, expected",
    [
        ("Bad", "The main server is unreachable", ["Title must be at least 5 characters"]),
        ("Server down", "Too short", ["Description must be at least 10 characters"]),
        (
            "    ",
            "",
            [
                "Title must be at least 5 characters",
                "Description must be at least 10 characters",
            ],
        ),
    ],
)
def test_create_rejects_short_text(service, alice, state, title, description, expected):
    with pytest.raises(ReportService.ValidationError) as excinfo:
        service.create(alice.id, title, description)

    assert excinfo.value.errors == expected
    assert state.count_reports() == 0


def test_create_rejects_unknown_enums(service, alice):
    with pytest.raises(ReportService.ValidationError) as excinfo:
        _create(service, alice, priority="urgent", source="email")

    assert excinfo.value.errors == [
        "priority must be one of: low, medium, high, critical",
        "source must be one of: website, discord, telegram",
    ]


def test_validation_error_is_value_error(service, alice):
    with pytest.raises(ValueError):
        _create(service, alice, title="")


def test_minimum_lengths_come_from_settings(state, alice):
    strict = ReportService(
        state,
        Settings.from_dict({"validation": {"title_min_length": 20, "description_min_length": 1}}),
    )
    with pytest.raises(ReportService.ValidationError):
        strict.create(alice.id, "Server down", "x")
    assert strict.create(alice.id, "Server down since this morning", "x").description == "x"


def test_get_by_id_is_owner_scoped(service, alice, bob):
    report = _create(service, alice)

    assert service.get_by_id(report.id, requesting_user_id=alice.id).id == report.id
    assert service.get_by_id(report.id).id == report.id
    with pytest.raises(ReportService.NotFoundError):
        service.get_by_id(report.id, requesting_user_id=bob.id)
    with pytest.raises(LookupError):
        service.get_by_id(404)


def test_update_single_field_leaves_others(service, alice):
    report = _create(service, alice, category="network", priority="high")

    updated = service.update(report.id, alice.id, status="in_progress")

    assert updated.status is ReportStatus.IN_PROGRESS
    for field in ("title", "description", "category", "priority", "source", "created_at"):
        assert getattr(updated, field) == getattr(report, field)
    assert updated.updated_at > report.updated_at


def test_blank_category_on_update_clears_to_null(service, alice):
    report = _create(service, alice, category="network")

    updated = service.update(report.id, alice.id, category="   ")

    assert updated.category is None
    assert updated.title == report.title
    assert updated.priority is report.priority
    assert service.update(report.id, alice.id, category="power").category == "power"


def test_update_with_no_fields_only_touches_updated_at(service, alice):
    report = _create(service, alice)
    updated = service.update(report.id, alice.id)
    assert (updated.title, updated.status) == (report.title, report.status)
    assert updated.updated_at > report.updated_at


def test_update_validates_provided_fields(service, alice):
    report = _create(service, alice)

    with pytest.raises(ReportService.ValidationError) as excinfo:
        service.update(report.id, alice.id, title="no", status="done")

    assert excinfo.value.errors == [
        "Title must be at least 5 characters",
        "status must be one of: open, in_progress, resolved, closed",
    ]
    assert service.get_by_id(report.id).title == "Server down"


def test_update_and_delete_require_owner(service, alice, bob):
    report = _create(service, alice)

    with pytest.raises(ReportService.NotFoundError):
        service.update(report.id, bob.id, title="Not my report")
    with pytest.raises(ReportService.NotFoundError):
        service.delete(report.id, bob.id)

    service.delete(report.id, alice.id)
    with pytest.raises(ReportService.NotFoundError):
        service.get_by_id(report.id)


def test_list_by_user_only_returns_owned_reports(service, alice, bob):
    _create(service, alice, title="Alice first")
    _create(service, alice, title="Alice second")
    _create(service, bob, title="Bob's only report")

    assert [r.title for r in service.list_by_user(alice.id)] == ["Alice second", "Alice first"]
    assert [r.title for r in service.list_by_user(alice.id, limit=1)] == ["Alice second"]


def test_admin_status_update_accepts_only_known_statuses(service, alice):
    report = _create(service, alice)

    for bad in ("done", "", None, "OPEN"):
        with pytest.raises(ReportService.ValidationError):
            service.admin_update_status(report.id, bad)
    assert service.get_by_id(report.id).status is ReportStatus.OPEN

    for status in ("resolved", "open", "closed", "in_progress"):
        assert service.admin_update_status(report.id, status).status.value == status

    with pytest.raises(ReportService.NotFoundError):
        service.admin_update_status(9999, "closed")


def test_list_filtered_validates_filters(service, alice, bob):
    _create(service, alice, priority="low")
    _create(service, bob, priority="high")

    assert len(service.list_filtered()) == 2
    assert len(service.list_filtered(status="", priority="")) == 2
    high = service.list_filtered(priority="high")
    assert [(r.username, r.priority) for r in high] == [("bob", ReportPriority.HIGH)]
    with pytest.raises(ReportService.ValidationError):
        service.list_filtered(status="pending")


def test_user_lookups(service, alice):
    _create(service, alice)
    assert service.get_user(alice.id).username == "alice"
    assert len(service.list_user_reports(alice.id)) == 1
    assert [u.username for u in service.list_users()] == ["alice"]
    with pytest.raises(ReportService.NotFoundError):
        service.get_user(31337)


def test_aggregate_stats(service, linker, alice, bob):
    _create(service, alice)
    closed = _create(service, bob)
    service.admin_update_status(closed.id, "closed")
    linker.ensure_linked(Platform.DISCORD, 1)
    linker.ensure_linked(Platform.TELEGRAM, 2)
    linker.ensure_linked(Platform.TELEGRAM, 3)

    assert service.aggregate_stats() == {
        "totalUsers": 2,
        "totalReports": 2,
        "openReports": 1,
        "discordIntegrations": 1,
        "telegramIntegrations": 2,
    }
