"""Tests for the website API."""
from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from server_report.models import User, UserRole
from server_report.state import StoreUnavailableError
from server_report.web import create_app


def _as(user: User) -> dict:
    return {"X-User-Id": str(user.id)}


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


@pytest.fixture
def report_payload():
    return {
        "title": "Server down",
        "description": "The main server is unreachable since noon",
        "source": "website",
    }


def test_health_needs_no_auth(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert datetime.fromisoformat(body["timestamp"])


def test_report_lifecycle_scenario(client, alice, bob, admin, report_payload):
    created = client.post("/api/reports", json=report_payload, headers=_as(alice))
    assert created.status_code == 201
    report = created.json()
    assert report["status"] == "open"
    assert report["priority"] == "medium"
    assert report["source"] == "website"
    assert report["user_id"] == alice.id

    foreign = client.get(f"/api/reports/{report['id']}", headers=_as(bob))
    assert foreign.status_code == 404
    assert foreign.json() == {"message": "Report not found"}

    resolved = client.put(
        f"/api/admin/reports/{report['id']}/status",
        json={"status": "resolved"},
        headers=_as(admin),
    )
    assert resolved.status_code == 200
    body = resolved.json()
    assert body["status"] == "resolved"
    assert datetime.fromisoformat(body["updated_at"]) > datetime.fromisoformat(report["updated_at"])


def test_create_validation_errors_are_400(client, alice):
    response = client.post(
        "/api/reports",
        json={"title": "Bad", "description": "short", "priority": "urgent"},
        headers=_as(alice),
    )
    assert response.status_code == 400
    errors = response.json()["errors"]
    assert "Title must be at least 5 characters" in errors
    assert "Description must be at least 10 characters" in errors
    assert "priority must be one of: low, medium, high, critical" in errors


def test_malformed_body_is_400(client, alice):
    response = client.post("/api/reports", json={"title": ["not", "text"]}, headers=_as(alice))
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request"


def test_list_get_update_delete_own_reports(client, alice, bob, report_payload):
    report_id = client.post("/api/reports", json=report_payload, headers=_as(alice)).json()["id"]
    client.post(
        "/api/reports",
        json={"title": "Bob's printer", "description": "Paper jam on the third floor"},
        headers=_as(bob),
    )

    listed = client.get("/api/reports", headers=_as(alice)).json()
    assert [r["id"] for r in listed] == [report_id]

    updated = client.put(
        f"/api/reports/{report_id}", json={"priority": "high"}, headers=_as(alice)
    )
    assert updated.status_code == 200
    assert updated.json()["priority"] == "high"
    assert updated.json()["title"] == "Server down"

    assert client.put(
        f"/api/reports/{report_id}", json={"title": "Mine now"}, headers=_as(bob)
    ).status_code == 404
    assert client.delete(f"/api/reports/{report_id}", headers=_as(bob)).status_code == 404

    deleted = client.delete(f"/api/reports/{report_id}", headers=_as(alice))
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Report deleted successfully"}
    assert client.get(f"/api/reports/{report_id}", headers=_as(alice)).status_code == 404


def test_non_numeric_report_id_is_400(client, alice):
    assert client.get("/api/reports/abc", headers=_as(alice)).status_code == 400


@pytest.mark.parametrize("headers", [{}, {"X-User-Id": "nope"}, {"X-User-Id": "4242"}])
def test_missing_or_unknown_user_is_401(client, headers):
    response = client.get("/api/reports", headers=headers)
    assert response.status_code == 401
    assert response.json() == {"message": "Authentication required"}


def test_inactive_user_is_401(client, state):
    suspended = state.create_user("mallory", "m@example.com", status="suspended")
    assert client.get("/api/reports", headers=_as(suspended)).status_code == 401


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/api/admin/users"),
        ("get", "/api/admin/reports"),
        ("get", "/api/admin/stats"),
        ("get", "/api/admin/users/1/reports"),
    ],
)
def test_admin_routes_forbid_regular_users(client, alice, method, path):
    response = getattr(client, method)(path, headers=_as(alice))
    assert response.status_code == 403
    assert client.get(path).status_code == 401


def test_admin_routes(client, alice, bob, admin, report_payload):
    client.post("/api/reports", json={**report_payload, "priority": "low"}, headers=_as(alice))
    client.post("/api/reports", json={**report_payload, "priority": "critical"}, headers=_as(bob))

    users = client.get("/api/admin/users", headers=_as(admin)).json()
    assert {u["username"] for u in users} == {"alice", "bob", "root"}
    assert all("role" in u for u in users)

    alice_reports = client.get(f"/api/admin/users/{alice.id}/reports", headers=_as(admin)).json()
    assert [r["priority"] for r in alice_reports] == ["low"]
    assert client.get("/api/admin/users/999/reports", headers=_as(admin)).status_code == 404

    critical = client.get(
        "/api/admin/reports", params={"priority": "critical"}, headers=_as(admin)
    ).json()
    assert [(r["username"], r["priority"]) for r in critical] == [("bob", "critical")]
    assert client.get(
        "/api/admin/reports", params={"status": "pending"}, headers=_as(admin)
    ).status_code == 400

    stats = client.get("/api/admin/stats", headers=_as(admin)).json()
    assert stats == {
        "totalUsers": 3,
        "totalReports": 2,
        "openReports": 2,
        "discordIntegrations": 0,
        "telegramIntegrations": 0,
    }


@pytest.mark.parametrize("payload", [{"status": "done"}, {"status": None}, {}])
def test_admin_status_update_rejects_invalid_status(client, alice, admin, report_payload, payload):
    report_id = client.post("/api/reports", json=report_payload, headers=_as(alice)).json()["id"]

    response = client.put(
        f"/api/admin/reports/{report_id}/status", json=payload, headers=_as(admin)
    )

    assert response.status_code == 400
    assert client.get(f"/api/reports/{report_id}", headers=_as(alice)).json()["status"] == "open"


def test_admin_status_update_unknown_report_is_404(client, admin):
    response = client.put(
        "/api/admin/reports/9999/status", json={"status": "closed"}, headers=_as(admin)
    )
    assert response.status_code == 404


def test_custom_authenticator(service, alice):
    app = create_app(service, authenticator=lambda request: alice)
    client = TestClient(app)
    assert client.get("/api/reports").status_code == 200


def test_store_failure_is_generic_500(service, alice, monkeypatch):
    def broken(user_id, limit=None):
        raise StoreUnavailableError("disk I/O error at /secret/path")

    monkeypatch.setattr(service.state, "list_reports_for_user", broken)
    client = TestClient(create_app(service, authenticator=lambda request: alice))

    response = client.get("/api/reports")

    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}


def test_admin_role_is_read_from_store(client, state):
    promoted = state.create_user("carol", "carol@example.com", role=UserRole.ADMIN)
    assert client.get("/api/admin/stats", headers=_as(promoted)).status_code == 200
