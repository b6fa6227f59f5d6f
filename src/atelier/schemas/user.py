from typing import List, Optional
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .base import BaseSchema, BaseResponseSchema
from .enums import UserStatus
from .role import RoleSummary


class UserBase(BaseSchema):
    """Base user schema."""
    name: Optional[str] = None
    email: EmailStr


class UserPublic(UserBase, BaseResponseSchema):
    """User as returned to other tenant members."""
    tenant_id: Optional[UUID] = None
    status: UserStatus
    is_super_admin: bool
    last_login_at: Optional[datetime] = None


class TeamMember(UserPublic):
    """Team listing entry with the member's roles."""
    roles: List[RoleSummary] = []


class InviteMemberRequest(BaseModel):
    """Request schema for inviting a team member."""
    email: EmailStr
    name: Optional[str] = None
    role_ids: List[UUID] = Field(default_factory=list)


class UpdateMemberRolesRequest(BaseModel):
    """Request schema for replacing a member's roles."""
    role_ids: List[UUID]


class ResendInvitationRequest(BaseModel):
    """Request schema for resending a pending invitation."""
    member_id: UUID


class ResetPasswordRequest(BaseModel):
    """Optional new password. One is generated when omitted."""
    password: Optional[str] = Field(default=None, min_length=8)


class PasswordResetResult(BaseModel):
    """Outcome of an admin password reset."""
    member_id: UUID
    name: Optional[str] = None
    email: EmailStr
    temporary_password: str
    password_generated: bool
