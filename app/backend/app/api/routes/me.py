"""Current user endpoint."""

from fastapi import APIRouter, Depends

from app.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated employee and role."""

    return {
        "employee_id": context.employee_id,
        "email": context.email,
        "display_name": context.display_name,
        "role": context.role.value,
        "team_id": context.team_id,
    }
