from .base import Base
from .tenant import Tenant
from .user import User
from .role import Role
from .user_role import UserRole
from .permission import Permission, RolePermission

__all__ = [
    "Base",
    "Tenant",
    "User",
    "Role",
    "UserRole",
    "Permission",
    "RolePermission",
]
