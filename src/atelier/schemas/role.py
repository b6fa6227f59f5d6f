from typing import Optional

from .base import BaseSchema, IDSchema


class RoleBase(BaseSchema):
    """Base schema for role."""
    name: str
    slug: str
    description: Optional[str] = None
    hierarchy_level: int
    is_default: bool = False


class RoleSummary(RoleBase, IDSchema):
    """Role as shown in member listings and the assignable-role picker."""
    pass
