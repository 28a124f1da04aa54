from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.auth import build_user_context
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.entities import Employee, ProjectAssignmentEntry, WorkStatus
from app.services.assignment_service import AssignmentFields, AssignmentStoreService
from conftest import Org


def _headers(employee: Employee) -> dict[str, str]:
    return {"X-Employee-Id": str(employee.id)}


def _row_state(db: Session, *, employee_id: int, project_id: str, day: date) -> dict[str, object]:
    db.expire_all()
    row = db.scalar(
        select(ProjectAssignmentEntry).where(
            ProjectAssignmentEntry.employee_id == employee_id,
            ProjectAssignmentEntry.project_id == project_id,
            ProjectAssignmentEntry.entry_date == day,
        )
    )
    assert row is not None
    return {
        "project_name": row.project_name,
        "planned_start_date": row.planned_start_date,
        "planned_end_date": row.planned_end_date,
        "actual_start_date": row.actual_start_date,
        "actual_end_date": row.actual_end_date,
        "status": row.status,
        "hours": Decimal(str(row.hours)),
        "comments": row.comments,
    }


def _count_rows(db: Session) -> int:
    return db.scalar(select(func.count(ProjectAssignmentEntry.id))) or 0


def test_upsert_creates_row_with_defaults(client: TestClient, org: Org) -> None:
    response = client.put(
        f"/api/v1/employees/{org.alice.id}/projects/2024-03-01/{org.apollo.id}",
        headers=_headers(org.alice),
        json={"project_name": "Apollo rollout"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["project_id"] == "P-APOLLO"
    assert body["project_name"] == "Apollo rollout"
    assert body["entry_date"] == "2024-03-01"
    assert body["status"] == "Active"
    assert body["hours"] == 0.0
    assert body["comments"] is None
    assert body["planned_start_date"] is None
    assert body["actual_end_date"] is None


def test_upsert_merges_by_presence(db_session: Session, org: Org) -> None:
    service = AssignmentStoreService(db_session)
    context = build_user_context(org.alice)
    day = date(2024, 3, 1)

    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        data=AssignmentFields(
            project_name="Apollo",
            actual_start_date="2024-02-20",
            status="pending",
            hours=3,
            comments="kick-off",
        ),
    )
    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        data=AssignmentFields(hours=5, project_name=None),
    )

    state = _row_state(db_session, employee_id=org.alice.id, project_id=org.apollo.id, day=day)
    assert state["hours"] == Decimal("5.00")
    assert state["comments"] == "kick-off"
    assert state["project_name"] == "Apollo"
    assert state["status"] is WorkStatus.PENDING
    assert state["actual_start_date"] == date(2024, 2, 20)


def test_upsert_allows_explicit_empty_string_to_overwrite(db_session: Session, org: Org) -> None:
    service = AssignmentStoreService(db_session)
    context = build_user_context(org.alice)
    day = date(2024, 3, 1)

    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        data=AssignmentFields(comments="draft"),
    )
    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        data=AssignmentFields(comments=""),
    )

    state = _row_state(db_session, employee_id=org.alice.id, project_id=org.apollo.id, day=day)
    assert state["comments"] == ""


def test_upsert_is_idempotent(db_session: Session, org: Org) -> None:
    service = AssignmentStoreService(db_session)
    context = build_user_context(org.alice)
    day = date(2024, 3, 1)
    payload = {
        "project_name": "Apollo",
        "planned_start_date": "2024-03-01",
        "planned_end_date": "2024-03-31",
        "status": "On Hold",
        "hours": "2.5",
    }

    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        data=AssignmentFields.from_mapping(payload),
    )
    first = _row_state(db_session, employee_id=org.alice.id, project_id=org.apollo.id, day=day)
    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        data=AssignmentFields.from_mapping(payload),
    )
    second = _row_state(db_session, employee_id=org.alice.id, project_id=org.apollo.id, day=day)

    assert first == second
    assert _count_rows(db_session) == 1


def test_scenario_c_null_name_keeps_stored_name(client: TestClient, org: Org) -> None:
    url = f"/api/v1/employees/{org.alice.id}/projects/2024-02-01/{org.borealis.id}"
    first = client.put(url, headers=_headers(org.alice), json={"project_name": "Borealis", "hours": 3})
    assert first.status_code == 200

    second = client.put(url, headers=_headers(org.alice), json={"project_name": None, "hours": 5})

    assert second.status_code == 200
    assert second.json()["hours"] == 5.0
    assert second.json()["project_name"] == "Borealis"


@pytest.mark.parametrize(
    "fields, message",
    [
        (AssignmentFields(planned_start_date="2024-03-10", planned_end_date="2024-03-01"), "planned window"),
        (AssignmentFields(actual_start_date="2024-03-10", actual_end_date="2024-03-01"), "actual window"),
        (AssignmentFields(hours=-1), "cannot be negative"),
        (AssignmentFields(hours="lots"), "must be a number"),
        (AssignmentFields(status="archived"), "status must be one of"),
        (AssignmentFields(status=""), "status must be one of"),
        (AssignmentFields(hours=1e30), "at most 99999999.99"),
        (AssignmentFields(hours="1000000000"), "at most 99999999.99"),
        (AssignmentFields(actual_start_date="2024/03/01"), "YYYY-MM-DD"),
    ],
)
def test_upsert_validation_rejects_before_write(
    db_session: Session,
    org: Org,
    fields: AssignmentFields,
    message: str,
) -> None:
    service = AssignmentStoreService(db_session)

    with pytest.raises(ValidationError, match=message):
        service.upsert_day(
            context=build_user_context(org.alice),
            employee_id=org.alice.id,
            project_id=org.apollo.id,
            day="2024-03-01",
            data=fields,
        )

    assert _count_rows(db_session) == 0


def test_window_is_checked_against_stored_values(db_session: Session, org: Org) -> None:
    service = AssignmentStoreService(db_session)
    context = build_user_context(org.alice)
    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day="2024-03-01",
        data=AssignmentFields(planned_start_date="2024-03-01", planned_end_date="2024-03-31"),
    )

    with pytest.raises(ValidationError, match="planned window"):
        service.upsert_day(
            context=context,
            employee_id=org.alice.id,
            project_id=org.apollo.id,
            day="2024-03-01",
            data=AssignmentFields(planned_start_date="2024-04-15"),
        )
    with pytest.raises(ValidationError, match="planned window"):
        service.update_day(
            context=context,
            employee_id=org.alice.id,
            project_id=org.apollo.id,
            day="2024-03-01",
            patch=AssignmentFields(planned_end_date="2024-02-01"),
        )

    state = _row_state(db_session, employee_id=org.alice.id, project_id=org.apollo.id, day=date(2024, 3, 1))
    assert state["planned_start_date"] == date(2024, 3, 1)
    assert state["planned_end_date"] == date(2024, 3, 31)


def test_upsert_unknown_project_is_a_conflict(client: TestClient, org: Org) -> None:
    response = client.put(
        f"/api/v1/employees/{org.alice.id}/projects/2024-03-01/P-MISSING",
        headers=_headers(org.alice),
        json={"hours": 1},
    )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert "P-MISSING" in detail["message"]
    assert detail["constraint"] == "fk_daily_project_assignments_project_id"


def test_upsert_unknown_employee_names_the_constraint(db_session: Session, org: Org) -> None:
    service = AssignmentStoreService(db_session)

    with pytest.raises(ConflictError) as exc_info:
        service.upsert_day(
            context=build_user_context(org.admin),
            employee_id=9999,
            project_id=org.apollo.id,
            day="2024-03-01",
            data=AssignmentFields(hours=1),
        )

    assert exc_info.value.constraint == "fk_daily_project_assignments_employee_id"


def test_update_day_never_creates(client: TestClient, org: Org) -> None:
    response = client.patch(
        f"/api/v1/employees/{org.alice.id}/projects/2024-03-01/{org.apollo.id}",
        headers=_headers(org.alice),
        json={"hours": 4},
    )

    assert response.status_code == 404


def test_update_day_applies_sent_fields_and_clears_explicit_nulls(db_session: Session, org: Org) -> None:
    service = AssignmentStoreService(db_session)
    context = build_user_context(org.alice)
    day = date(2024, 3, 1)
    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        data=AssignmentFields(
            project_name="Apollo",
            status="Pending",
            hours=6,
            comments="initial",
            planned_end_date="2024-03-31",
        ),
    )

    service.update_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        patch=AssignmentFields(comments="revised"),
    )
    state = _row_state(db_session, employee_id=org.alice.id, project_id=org.apollo.id, day=day)
    assert state["comments"] == "revised"
    assert state["hours"] == Decimal("6.00")
    assert state["status"] is WorkStatus.PENDING

    service.update_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day=day,
        patch=AssignmentFields(status=None, hours=None, planned_end_date=None),
    )
    state = _row_state(db_session, employee_id=org.alice.id, project_id=org.apollo.id, day=day)
    assert state["status"] is WorkStatus.ACTIVE
    assert state["hours"] == Decimal("0.00")
    assert state["planned_end_date"] is None
    assert state["project_name"] == "Apollo"

    with pytest.raises(ValidationError, match="No fields to update"):
        service.update_day(
            context=context,
            employee_id=org.alice.id,
            project_id=org.apollo.id,
            day=day,
            patch=AssignmentFields(),
        )


def test_update_day_for_missing_key_raises_not_found(db_session: Session, org: Org) -> None:
    service = AssignmentStoreService(db_session)

    with pytest.raises(NotFoundError):
        service.update_day(
            context=build_user_context(org.alice),
            employee_id=org.alice.id,
            project_id=org.apollo.id,
            day="2024-03-01",
            patch=AssignmentFields(status="Completed"),
        )


def test_delete_day_distinguishes_nothing_to_delete(client: TestClient, org: Org) -> None:
    url = f"/api/v1/employees/{org.alice.id}/projects/2024-03-01/{org.apollo.id}"
    client.put(url, headers=_headers(org.alice), json={"hours": 2})

    deleted = client.delete(url, headers=_headers(org.alice))
    assert deleted.status_code == 200
    assert deleted.json() == {"deleted": True, "status": "deleted"}

    again = client.delete(url, headers=_headers(org.alice))
    assert again.status_code == 200
    assert again.json() == {"deleted": False, "status": "nothing_to_delete"}


def test_employee_cannot_write_for_a_colleague(client: TestClient, org: Org) -> None:
    response = client.put(
        f"/api/v1/employees/{org.bob.id}/projects/2024-03-01/{org.apollo.id}",
        headers=_headers(org.alice),
        json={"hours": 2},
    )

    assert response.status_code == 403


def test_purge_employee_entries_removes_rows_and_refreshes_projects(db_session: Session, org: Org) -> None:
    service = AssignmentStoreService(db_session)
    context = build_user_context(org.admin)
    service.upsert_day(
        context=context,
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day="2024-03-01",
        data=AssignmentFields(actual_start_date="2024-02-01"),
    )
    service.upsert_day(
        context=context,
        employee_id=org.bob.id,
        project_id=org.apollo.id,
        day="2024-03-01",
        data=AssignmentFields(actual_start_date="2024-02-10"),
    )

    counts = service.purge_employee_entries(org.alice.id)

    assert counts == {"activities": 0, "assignments": 1, "projects": 1}
    db_session.expire_all()
    assert org.apollo.actual_start_date == date(2024, 2, 10)
    assert _count_rows(db_session) == 1


def test_upsert_logs_at_info_and_returns_the_row(
    db_session: Session,
    org: Org,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.INFO, logger="app.services.assignment_service")
    service = AssignmentStoreService(db_session)

    first = service.upsert_day(
        context=build_user_context(org.alice),
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day="2024-03-01",
        data=AssignmentFields(hours=3),
    )
    second = service.upsert_day(
        context=build_user_context(org.alice),
        employee_id=org.alice.id,
        project_id=org.apollo.id,
        day="2024-03-01",
        data=AssignmentFields(comments="follow-up"),
    )

    assert first.hours == Decimal("3.00")
    assert second.comments == "follow-up"
    records = [record for record in caplog.records if record.getMessage() == "Upserted project assignment"]
    assert [record.inserted for record in records] == [True, False]
    assert records[0].project_id == org.apollo.id


def test_oversized_hours_over_http_are_unprocessable(client: TestClient, org: Org) -> None:
    response = client.put(
        f"/api/v1/employees/{org.alice.id}/projects/2024-03-01/{org.apollo.id}",
        headers=_headers(org.alice),
        json={"hours": 1e30},
    )

    assert response.status_code == 422
    assert "at most" in response.json()["detail"]
