from enum import Enum


class UserStatus(str, Enum):
    """Standing of a user account within its tenant."""
    INVITED = "invited"
    ACTIVE = "active"
    DISABLED = "disabled"
