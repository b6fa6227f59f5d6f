from sqlalchemy import Column, ForeignKey, UniqueConstraint, Uuid as SQLUUID
from sqlalchemy.orm import relationship

from atelier.models.base import Base


class UserRole(Base):
    """Association table for User-Role many-to-many relationship."""
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role_id", name="uq_user_roles_user_role"),)

    user_id = Column(SQLUUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(SQLUUID, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    assigned_by_user_id = Column(SQLUUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    user = relationship("User", back_populates="user_roles", foreign_keys=[user_id])
    role = relationship("Role", back_populates="user_roles")
