from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from atelier.api.guard import CurrentUser
from atelier.db.session import SessionDep
from atelier.schemas.base import SuccessResponse
from atelier.schemas.role import RoleSummary
from atelier.schemas.user import (
    InviteMemberRequest,
    PasswordResetResult,
    ResendInvitationRequest,
    ResetPasswordRequest,
    TeamMember,
    UpdateMemberRolesRequest,
    UserPublic,
)
from atelier.services.auth_service import AuthProvider, get_auth_provider
from atelier.services.team_service import TeamService

router = APIRouter()


def get_team_service(auth_provider: AuthProvider = Depends(get_auth_provider)) -> TeamService:
    return TeamService(auth_provider)


@router.get("/members", response_model=SuccessResponse[List[TeamMember]])
async def list_members(
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    """List every member of the caller's tenant with their roles."""
    members = await team_service.list_members(db, current_user)
    return SuccessResponse(data=members)


@router.delete("/members/{member_id}", response_model=SuccessResponse[UserPublic])
async def deactivate_member(
    member_id: UUID,
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    member = await team_service.deactivate_member(db, current_user, member_id)
    return SuccessResponse(message="Member deactivated", data=member)


@router.put("/members/{member_id}/reactivate", response_model=SuccessResponse[UserPublic])
async def reactivate_member(
    member_id: UUID,
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    member = await team_service.reactivate_member(db, current_user, member_id)
    return SuccessResponse(message="Member reactivated", data=member)


@router.put("/members/{member_id}/transfer-ownership", response_model=SuccessResponse[TeamMember])
async def transfer_ownership(
    member_id: UUID,
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    """Make another active member the owner. The caller becomes an admin."""
    new_owner = await team_service.transfer_ownership(db, current_user, member_id)
    return SuccessResponse(message="Ownership transferred", data=new_owner)


@router.put("/members/{member_id}/roles", response_model=SuccessResponse[TeamMember])
async def update_member_roles(
    member_id: UUID,
    roles_in: UpdateMemberRolesRequest,
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    member = await team_service.update_member_roles(db, current_user, member_id, roles_in.role_ids)
    return SuccessResponse(message="Roles updated", data=member)


@router.get("/roles", response_model=SuccessResponse[List[RoleSummary]])
async def list_assignable_roles(
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    """Roles the caller may assign when inviting or editing a member."""
    roles = await team_service.list_assignable_roles(db, current_user)
    return SuccessResponse(data=roles)


@router.post("/invite", response_model=SuccessResponse[TeamMember], status_code=status.HTTP_201_CREATED)
async def invite_member(
    invite_in: InviteMemberRequest,
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    member = await team_service.invite_member(
        db, current_user, invite_in.email, invite_in.name, invite_in.role_ids
    )
    return SuccessResponse(message="Invitation sent", data=member)


@router.get("/invite", response_model=SuccessResponse[List[TeamMember]])
async def list_invitations(
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    """Pending invitations of the caller's tenant."""
    invitations = await team_service.list_invitations(db, current_user)
    return SuccessResponse(data=invitations)


@router.patch("/invite", response_model=SuccessResponse[UserPublic])
async def resend_invitation(
    resend_in: ResendInvitationRequest,
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    member = await team_service.resend_invitation(db, current_user, resend_in.member_id)
    return SuccessResponse(message="Invitation resent", data=member)


@router.delete("/invite", response_model=SuccessResponse)
async def cancel_invitation(
    id: UUID,
    current_user: CurrentUser,
    db: SessionDep,
    team_service: TeamService = Depends(get_team_service),
):
    await team_service.cancel_invitation(db, current_user, id)
    return SuccessResponse(message="Invitation cancelled")


@router.put("/members/{member_id}/reset-password", response_model=SuccessResponse[PasswordResetResult])
async def reset_password(
    member_id: UUID,
    current_user: CurrentUser,
    db: SessionDep,
    reset_in: Optional[ResetPasswordRequest] = None,
    team_service: TeamService = Depends(get_team_service),
):
    """Set a new password for a member below the caller. One is generated when none is given."""
    password = reset_in.password if reset_in else None
    result = await team_service.reset_password(db, current_user, member_id, password)
    return SuccessResponse(message="Password reset", data=result)
