from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.crud.base import CRUDBase
from atelier.models import User
from atelier.schemas.enums import UserStatus


class CRUDUser(CRUDBase[User]):
    """Queries over the users table."""

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[User]:
        """Get a user by email."""
        stmt = select(User).where(User.email == email).execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_in_tenant(self, db: AsyncSession, *, id: UUID, tenant_id: Optional[UUID]) -> Optional[User]:
        """Get a user only if it belongs to ``tenant_id``."""
        user = await self.get(db, id=id)
        if user is None or tenant_id is None or user.tenant_id != tenant_id:
            return None
        return user

    async def list_by_tenant(self, db: AsyncSession, *, tenant_id: UUID) -> List[User]:
        """All members of a tenant, whatever their status, oldest first."""
        stmt = select(User).where(User.tenant_id == tenant_id).order_by(User.created_at, User.email).execution_options(
            populate_existing=True
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_by_status(self, db: AsyncSession, *, tenant_id: UUID, status: UserStatus) -> List[User]:
        """Members of a tenant in one status, newest first."""
        stmt = (
            select(User)
            .where(User.tenant_id == tenant_id, User.status == status)
            .order_by(User.created_at.desc(), User.email)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def compare_and_set_status(
        self, db: AsyncSession, *, id: UUID, expected: List[UserStatus], new: UserStatus
    ) -> bool:
        """Move a user to ``new`` only if its status is still one of ``expected``.

        Returns False when no row matched, i.e. a concurrent request changed
        the status first.
        """
        stmt = (
            update(User)
            .where(User.id == id, User.status.in_(expected))
            .values(status=new, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def compare_and_set_super_admin(
        self, db: AsyncSession, *, id: UUID, expected: bool, new: bool
    ) -> bool:
        """Flip the owner flag only if it still holds ``expected``."""
        stmt = (
            update(User)
            .where(User.id == id, User.is_super_admin == expected)
            .values(is_super_admin=new, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def delete_if_status(self, db: AsyncSession, *, id: UUID, expected: UserStatus) -> bool:
        """Delete a user only while it is still in ``expected`` status."""
        stmt = (
            delete(User)
            .where(User.id == id, User.status == expected)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1


user = CRUDUser(User)
