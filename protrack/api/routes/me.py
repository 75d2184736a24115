"""Current user endpoint."""

from fastapi import APIRouter, Depends

from protrack.core.auth import RequestUserContext, get_current_user_context

router = APIRouter(prefix="/me", tags=["me"])


@router.get("")
def get_me(context: RequestUserContext = Depends(get_current_user_context)) -> dict[str, object]:
    """Return current authenticated user profile and permissions."""

    return {
        "id": str(context.user_id),
        "tenant_id": str(context.tenant_id),
        "email": context.email,
        "name": context.name,
        "role": context.role.value,
        "permissions": dict(context.permissions),
    }
