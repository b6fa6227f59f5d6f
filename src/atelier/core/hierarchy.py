"""Role hierarchy rules.

A lower ``hierarchy_level`` means strictly more authority. Level 0 is the
tenant owner and is never handed out through invites or role edits.
"""

from enum import IntEnum
from typing import Iterable


class HierarchyLevel(IntEnum):
    OWNER = 0
    ADMIN = 1
    MANAGER = 2
    MEMBER = 4
    LIMITED = 5


OWNER_LEVEL = int(HierarchyLevel.OWNER)
ADMIN_LEVEL = int(HierarchyLevel.ADMIN)
MANAGER_LEVEL = int(HierarchyLevel.MANAGER)

# Effective level of a user with no roles at all.
LEAST_PRIVILEGED_LEVEL = 999

OWNER_SLUG = "owner"
ADMIN_SLUG = "admin"
DEFAULT_ROLE_SLUG = "staff"

SYSTEM_ROLE_LEVELS: dict[str, int] = {
    "owner": HierarchyLevel.OWNER,
    "admin": HierarchyLevel.ADMIN,
    "sales_manager": HierarchyLevel.MANAGER,
    "design_manager": HierarchyLevel.MANAGER,
    "stock_manager": HierarchyLevel.MANAGER,
    "procurement_manager": HierarchyLevel.MANAGER,
    "finance_manager": HierarchyLevel.MANAGER,
    "project_manager": HierarchyLevel.MANAGER,
    "site_supervisor_manager": HierarchyLevel.MANAGER,
    "sales": HierarchyLevel.MEMBER,
    "design": HierarchyLevel.MEMBER,
    "stock": HierarchyLevel.MEMBER,
    "procurement": HierarchyLevel.MEMBER,
    "finance": HierarchyLevel.MEMBER,
    "project": HierarchyLevel.MEMBER,
    "site_supervisor": HierarchyLevel.MEMBER,
    "staff": HierarchyLevel.MEMBER,
    "limited": HierarchyLevel.LIMITED,
}


def effective_level(levels: Iterable[int], is_super_admin: bool = False) -> int:
    """Most privileged level across a user's roles.

    The super-admin flag forces level 0 whatever the role table says.
    """
    if is_super_admin:
        return OWNER_LEVEL
    return min(levels, default=LEAST_PRIVILEGED_LEVEL)


def outranks(actor_level: int, target_level: int) -> bool:
    """True when the actor has strictly more authority than the target."""
    return actor_level < target_level


def min_assignable_level(actor_level: int) -> int:
    """Lowest level an actor may hand out when inviting or editing roles.

    The owner can grant Admin and below. Everyone else is capped at their
    own level and never below Manager, so Admin is owner-grantable only.
    """
    if actor_level == OWNER_LEVEL:
        return ADMIN_LEVEL
    return max(actor_level, MANAGER_LEVEL)


def can_assign_level(actor_level: int, level: int) -> bool:
    return level != OWNER_LEVEL and level >= min_assignable_level(actor_level)
