from __future__ import annotations

from collections.abc import Generator
from dataclasses import dataclass
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.clock import FixedClock, get_clock
from app.db.base import Base
from app.db.dependencies import get_db_session
import app.models.entities  # noqa: F401
from app.main import create_app
from app.models.entities import (
    ActivityEntry,
    Employee,
    EmployeeRole,
    Project,
    ProjectAssignmentEntry,
    Team,
    WorkStatus,
)

TEST_TABLES = [
    Team.__table__,
    Employee.__table__,
    Project.__table__,
    ActivityEntry.__table__,
    ProjectAssignmentEntry.__table__,
]

TODAY = date(2024, 3, 15)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture()
def client(db_session: Session, clock: FixedClock) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@dataclass
class Org:
    """Seeded master data shared by most tests."""

    team: Team
    other_team: Team
    admin: Employee
    lead: Employee
    alice: Employee
    bob: Employee
    outsider: Employee
    apollo: Project
    borealis: Project
    cygnus: Project


def _employee(
    db: Session,
    *,
    first_name: str,
    last_name: str,
    role: EmployeeRole,
    team: Team | None,
) -> Employee:
    row = Employee(
        first_name=first_name,
        last_name=last_name,
        email=f"{first_name.lower()}.{last_name.lower()}@test.local",
        role=role,
        team_id=team.id if team is not None else None,
    )
    db.add(row)
    return row


@pytest.fixture()
def org(db_session: Session) -> Org:
    team = Team(name="Analytics")
    other_team = Team(name="Platform")
    db_session.add_all([team, other_team])
    db_session.flush()

    admin = _employee(db_session, first_name="Ada", last_name="Admin", role=EmployeeRole.ADMIN, team=None)
    lead = _employee(db_session, first_name="Lena", last_name="Lead", role=EmployeeRole.TEAM_LEAD, team=team)
    alice = _employee(db_session, first_name="Alice", last_name="Anders", role=EmployeeRole.EMPLOYEE, team=team)
    bob = _employee(db_session, first_name="Bob", last_name="Brown", role=EmployeeRole.EMPLOYEE, team=team)
    outsider = _employee(
        db_session,
        first_name="Oscar",
        last_name="Other",
        role=EmployeeRole.EMPLOYEE,
        team=other_team,
    )

    apollo = Project(
        id="P-APOLLO",
        name="Apollo",
        planned_start_date=date(2024, 1, 1),
        planned_end_date=date(2024, 12, 31),
        status=WorkStatus.ACTIVE,
    )
    borealis = Project(
        id="P-BOREALIS",
        name="borealis",
        planned_start_date=date(2024, 1, 1),
        planned_end_date=date(2024, 2, 29),
        status=WorkStatus.ACTIVE,
    )
    cygnus = Project(id="P-CYGNUS", name="Cygnus", status=WorkStatus.PENDING)
    db_session.add_all([apollo, borealis, cygnus])
    db_session.commit()

    return Org(
        team=team,
        other_team=other_team,
        admin=admin,
        lead=lead,
        alice=alice,
        bob=bob,
        outsider=outsider,
        apollo=apollo,
        borealis=borealis,
        cygnus=cygnus,
    )
