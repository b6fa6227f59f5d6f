from fastapi import APIRouter, Depends

from atelier.api.api_v1.endpoints.team import get_team_service
from atelier.api.guard import CurrentUser, InvitedOrActiveUser
from atelier.crud.crud_role import role as crud_role
from atelier.db.session import SessionDep
from atelier.schemas.auth import AuthenticatedUser, PermissionsResponse
from atelier.schemas.base import SuccessResponse
from atelier.schemas.role import RoleSummary
from atelier.schemas.user import UserPublic
from atelier.services.permission_resolver import permission_resolver
from atelier.services.team_service import TeamService

router = APIRouter()


@router.get("/me", response_model=SuccessResponse[AuthenticatedUser])
async def read_current_user(current_user: CurrentUser):
    """Get the authenticated user as the guard resolved it."""
    return SuccessResponse(data=current_user)


@router.get("/permissions", response_model=SuccessResponse[PermissionsResponse])
async def read_permissions(current_user: CurrentUser, db: SessionDep):
    """
    Get the caller's roles, effective hierarchy level and permissions.
    The frontend uses this to decide which actions to show.
    """
    resolved = await permission_resolver.resolve(db, current_user.id)
    roles = await crud_role.get_for_user(db, user_id=current_user.id)
    return SuccessResponse(
        data=PermissionsResponse(
            user_id=current_user.id,
            roles=[RoleSummary.model_validate(role) for role in roles],
            role_slugs=sorted(resolved.role_slugs),
            hierarchy_level=resolved.min_hierarchy_level,
            permissions=resolved.permissions,
            granted_permissions=sorted(resolved.granted_permissions),
        )
    )


@router.post("/complete-invite", response_model=SuccessResponse[UserPublic])
async def complete_invite(
    current_user: InvitedOrActiveUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    """Activate the caller's account once they have accepted their invitation."""
    user = await team_service.complete_invite(db, current_user)
    return SuccessResponse(message="Invitation accepted", data=user)
