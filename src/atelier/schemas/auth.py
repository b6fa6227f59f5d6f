from typing import Dict, List, Optional, Set
from uuid import UUID

from pydantic import BaseModel, Field

from .enums import UserStatus
from .role import RoleSummary


class SessionIdentity(BaseModel):
    """What the auth provider vouches for: who holds the session."""
    user_id: UUID
    email: Optional[str] = None


class AuthenticatedUser(BaseModel):
    """Caller context attached by the guard and passed explicitly downstream."""
    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    tenant_id: Optional[UUID] = None
    status: UserStatus
    is_super_admin: bool = False


class GuardOptions(BaseModel):
    """Extra checks a protected endpoint can ask the guard for."""
    required_permissions: List[str] = Field(default_factory=list)
    require_all: bool = True
    # lets a user who has not finished accepting their invitation through
    allow_invited: bool = False


class GuardResult(BaseModel):
    """Outcome of the guard: either an authenticated user or an error and status."""
    success: bool
    user: Optional[AuthenticatedUser] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def allow(cls, user: AuthenticatedUser) -> "GuardResult":
        return cls(success=True, user=user)

    @classmethod
    def deny(cls, error: str, status_code: int) -> "GuardResult":
        return cls(success=False, error=error, status_code=status_code)


class ResolvedPermissions(BaseModel):
    """Roles, effective hierarchy level and derived permissions of a user."""
    user_id: UUID
    role_slugs: Set[str] = Field(default_factory=set)
    min_hierarchy_level: int
    is_super_admin: bool = False
    permissions: Dict[str, bool] = Field(default_factory=dict)
    granted_permissions: Set[str] = Field(default_factory=set)

    def has_permission(self, key: str) -> bool:
        if self.is_super_admin:
            return True
        return key in self.granted_permissions or self.permissions.get(key, False)


class PermissionsResponse(BaseModel):
    """Body of ``GET /auth/permissions``."""
    user_id: UUID
    roles: List[RoleSummary]
    role_slugs: List[str]
    hierarchy_level: int
    permissions: Dict[str, bool]
    granted_permissions: List[str]
