from __future__ import annotations

from fastapi.testclient import TestClient

from app.core.auth import AppRole, RequestUserContext, can_access_employee, can_access_team, has_role
from conftest import Org


def _context(role: AppRole, *, employee_id: int = 10, team_id: int | None = 1) -> RequestUserContext:
    return RequestUserContext(
        employee_id=employee_id,
        email=f"user{employee_id}@test.local",
        display_name=f"User {employee_id}",
        role=role,
        team_id=team_id,
    )


def test_has_role_matches_expected_roles() -> None:
    context = _context(AppRole.TEAM_LEAD)

    assert has_role(context, {AppRole.TEAM_LEAD}) is True
    assert has_role(context, {AppRole.ADMIN, AppRole.TEAM_LEAD}) is True
    assert has_role(context, {AppRole.ADMIN}) is False


def test_can_access_employee_by_role() -> None:
    admin = _context(AppRole.ADMIN, team_id=None)
    lead = _context(AppRole.TEAM_LEAD, team_id=1)
    employee = _context(AppRole.EMPLOYEE, employee_id=10, team_id=1)

    assert can_access_employee(admin, employee_id=99, employee_team_id=7) is True
    assert can_access_employee(lead, employee_id=99, employee_team_id=1) is True
    assert can_access_employee(lead, employee_id=99, employee_team_id=2) is False
    assert can_access_employee(lead, employee_id=99, employee_team_id=None) is False
    assert can_access_employee(employee, employee_id=10, employee_team_id=1) is True
    assert can_access_employee(employee, employee_id=11, employee_team_id=1) is False


def test_team_lead_without_team_reaches_only_self() -> None:
    lead = _context(AppRole.TEAM_LEAD, employee_id=5, team_id=None)

    assert can_access_employee(lead, employee_id=5, employee_team_id=None) is True
    assert can_access_employee(lead, employee_id=6, employee_team_id=None) is False
    assert can_access_team(lead, team_id=1) is False


def test_can_access_team_by_role() -> None:
    assert can_access_team(_context(AppRole.ADMIN, team_id=None), team_id=3) is True
    assert can_access_team(_context(AppRole.TEAM_LEAD, team_id=3), team_id=3) is True
    assert can_access_team(_context(AppRole.TEAM_LEAD, team_id=3), team_id=4) is False
    assert can_access_team(_context(AppRole.EMPLOYEE, team_id=3), team_id=3) is False


def test_me_returns_current_employee(client: TestClient, org: Org) -> None:
    response = client.get("/api/v1/me", headers={"X-Employee-Id": str(org.lead.id)})

    assert response.status_code == 200
    body = response.json()
    assert body["employee_id"] == org.lead.id
    assert body["display_name"] == "Lena Lead"
    assert body["role"] == "team_lead"
    assert body["team_id"] == org.team.id


def test_missing_or_invalid_identity_header_is_unauthorized(client: TestClient, org: Org) -> None:
    assert client.get("/api/v1/me").status_code == 401
    assert client.get("/api/v1/me", headers={"X-Employee-Id": "abc"}).status_code == 401
    assert client.get("/api/v1/me", headers={"X-Employee-Id": "0"}).status_code == 401
    assert client.get("/api/v1/me", headers={"X-Employee-Id": "9999"}).status_code == 401


def test_employee_cannot_read_a_colleagues_day(client: TestClient, org: Org) -> None:
    response = client.get(
        f"/api/v1/employees/{org.bob.id}/activities/2024-03-01",
        headers={"X-Employee-Id": str(org.alice.id)},
    )
    assert response.status_code == 403

    lead_response = client.get(
        f"/api/v1/employees/{org.bob.id}/activities/2024-03-01",
        headers={"X-Employee-Id": str(org.lead.id)},
    )
    assert lead_response.status_code == 200

    outside_response = client.get(
        f"/api/v1/employees/{org.outsider.id}/activities/2024-03-01",
        headers={"X-Employee-Id": str(org.lead.id)},
    )
    assert outside_response.status_code == 403
