from sqlalchemy import Boolean, Column, ForeignKey, String, UniqueConstraint, Uuid as SQLUUID
from sqlalchemy.orm import relationship

from atelier.models.base import Base


class Permission(Base):
    """Fine-grained permission key such as ``leads.view`` or ``team.invite``."""
    __tablename__ = "permissions"

    key = Column(String, nullable=False, unique=True)
    module = Column(String, nullable=False)
    label = Column(String, nullable=True)

    # Relationships
    role_permissions = relationship("RolePermission", back_populates="permission")


class RolePermission(Base):
    """Grant of a permission to a role."""
    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_role_permission"),)

    role_id = Column(SQLUUID, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    permission_id = Column(SQLUUID, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)
    granted = Column(Boolean, default=True, nullable=False)

    # Relationships
    role = relationship("Role", back_populates="role_permissions")
    permission = relationship("Permission", back_populates="role_permissions")
