from .base import BaseSchema, TimestampSchema, IDSchema, BaseResponseSchema, SuccessResponse, ErrorResponse
from .enums import UserStatus
from .role import RoleBase, RoleSummary
from .user import (
    UserBase,
    UserPublic,
    TeamMember,
    InviteMemberRequest,
    UpdateMemberRolesRequest,
    ResendInvitationRequest,
    ResetPasswordRequest,
    PasswordResetResult,
)
from .auth import SessionIdentity, AuthenticatedUser, GuardOptions, GuardResult, ResolvedPermissions, PermissionsResponse
