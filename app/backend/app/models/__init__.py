"""ORM model package."""

from app.models.entities import (
    ActivityEntry,
    Employee,
    EmployeeRole,
    Project,
    ProjectAssignmentEntry,
    Team,
    WorkStatus,
)

__all__ = [
    "ActivityEntry",
    "Employee",
    "EmployeeRole",
    "Project",
    "ProjectAssignmentEntry",
    "Team",
    "WorkStatus",
]
