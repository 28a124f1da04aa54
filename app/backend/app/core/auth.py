"""Authentication context extraction and RBAC guard utilities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.dependencies import get_db_session
from app.models.entities import Employee, EmployeeRole


class AppRole(str, Enum):
    """Application role names issued by the identity provider."""

    ADMIN = "admin"
    TEAM_LEAD = "team_lead"
    EMPLOYEE = "employee"


EMPLOYEE_ROLE_TO_APP_ROLE: dict[EmployeeRole, AppRole] = {
    EmployeeRole.ADMIN: AppRole.ADMIN,
    EmployeeRole.TEAM_LEAD: AppRole.TEAM_LEAD,
    EmployeeRole.EMPLOYEE: AppRole.EMPLOYEE,
}


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    employee_id: int
    email: str
    display_name: str
    role: AppRole
    team_id: int | None

    @property
    def is_admin(self) -> bool:
        return self.role is AppRole.ADMIN

    @property
    def is_team_lead(self) -> bool:
        return self.role is AppRole.TEAM_LEAD


def _parse_employee_header(raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Employee-Id must be an integer employee id.",
        ) from exc
    if value <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Employee-Id must be a positive employee id.",
        )
    return value


def _resolve_employee_id(x_employee_id: str | None) -> int:
    if x_employee_id and x_employee_id.strip():
        return _parse_employee_header(x_employee_id)

    settings = get_settings()
    if settings.auth_allow_dev_principal and settings.auth_dev_employee_id is not None:
        return settings.auth_dev_employee_id

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Missing identity header. Expected X-Employee-Id or enable development principal fallback.",
    )


def build_user_context(employee: Employee) -> RequestUserContext:
    """Project an employee row into a request context."""

    return RequestUserContext(
        employee_id=employee.id,
        email=employee.email,
        display_name=employee.display_name,
        role=EMPLOYEE_ROLE_TO_APP_ROLE[employee.role],
        team_id=employee.team_id,
    )


def get_current_user_context(
    x_employee_id: str | None = Header(default=None, alias="X-Employee-Id"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request employee and role.

    Header strategy: the identity collaborator (reverse proxy / gateway)
    verifies credentials and forwards the employee id as a trusted header.
    """

    employee_id = _resolve_employee_id(x_employee_id)
    employee = db.scalar(select(Employee).where(Employee.id == employee_id))
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authenticated employee does not exist.",
        )
    return build_user_context(employee)


def has_role(context: RequestUserContext, allowed_roles: set[AppRole]) -> bool:
    """Check whether user has any of the allowed roles."""

    return context.role in allowed_roles


def can_access_employee(context: RequestUserContext, *, employee_id: int, employee_team_id: int | None) -> bool:
    """Whether the actor may read or write another employee's day data.

    Admins reach everyone, team leads reach members of their own team, and
    everybody reaches their own records.
    """

    if context.is_admin or context.employee_id == employee_id:
        return True
    if context.is_team_lead and context.team_id is not None:
        return employee_team_id == context.team_id
    return False


def can_access_team(context: RequestUserContext, *, team_id: int) -> bool:
    """Whether the actor may run reports scoped to a whole team."""

    if context.is_admin:
        return True
    return context.is_team_lead and context.team_id == team_id


def require_roles(*roles: AppRole):
    """Dependency factory requiring at least one provided role."""

    allowed = set(roles)

    def dependency(context: RequestUserContext = Depends(get_current_user_context)) -> RequestUserContext:
        if not has_role(context, allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions for this operation.",
            )
        return context

    return dependency
