from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, String, Uuid as SQLUUID
from sqlalchemy.orm import relationship

from atelier.models.base import Base
from atelier.schemas.enums import UserStatus


class User(Base):
    """Application user. ``id`` is the auth provider's user id."""
    __tablename__ = "users"

    tenant_id = Column(SQLUUID, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    status = Column(
        SQLEnum(
            UserStatus,
            native_enum=False,
            length=32,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=UserStatus.INVITED,
        nullable=False,
    )
    # Owner override, equivalent to hierarchy level 0 regardless of roles
    is_super_admin = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # Relationships
    tenant = relationship("Tenant", back_populates="users")
    user_roles = relationship(
        "UserRole",
        back_populates="user",
        foreign_keys="UserRole.user_id",
        cascade="all, delete-orphan",
    )
    roles = relationship(
        "Role",
        secondary="user_roles",
        primaryjoin="User.id == UserRole.user_id",
        secondaryjoin="Role.id == UserRole.role_id",
        back_populates="users",
        viewonly=True,
    )
