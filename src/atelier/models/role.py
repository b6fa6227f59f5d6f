from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint, Uuid as SQLUUID
from sqlalchemy.orm import relationship

from atelier.models.base import Base


class Role(Base):
    """Role with a hierarchy level. ``tenant_id`` is null for shared system roles."""
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uq_roles_tenant_slug"),)

    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    tenant_id = Column(SQLUUID, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)
    hierarchy_level = Column(Integer, nullable=False)
    is_system_role = Column(Boolean, default=False, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)

    # Relationships
    tenant = relationship("Tenant", back_populates="roles")
    user_roles = relationship("UserRole", back_populates="role", cascade="all, delete-orphan")
    users = relationship(
        "User",
        secondary="user_roles",
        primaryjoin="Role.id == UserRole.role_id",
        secondaryjoin="User.id == UserRole.user_id",
        back_populates="roles",
        viewonly=True,
    )
    role_permissions = relationship("RolePermission", back_populates="role", cascade="all, delete-orphan")
