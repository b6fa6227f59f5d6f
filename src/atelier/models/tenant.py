from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from atelier.models.base import Base


class Tenant(Base):
    """An isolated customer organization."""
    __tablename__ = "tenants"

    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)

    # Relationships
    users = relationship("User", back_populates="tenant")
    roles = relationship("Role", back_populates="tenant")
