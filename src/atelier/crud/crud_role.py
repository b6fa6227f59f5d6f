from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.hierarchy import OWNER_LEVEL
from atelier.crud.base import CRUDBase
from atelier.models import Permission, Role, RolePermission, UserRole


class CRUDRole(CRUDBase[Role]):
    """Queries over roles, user_roles and role_permissions."""

    async def get_system_role(self, db: AsyncSession, *, slug: str) -> Optional[Role]:
        """Get the shared system role with this slug."""
        stmt = select(Role).where(Role.slug == slug, Role.tenant_id.is_(None))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(self, db: AsyncSession, *, ids: Iterable[UUID]) -> List[Role]:
        ids = list(ids)
        if not ids:
            return []
        result = await db.execute(select(Role).where(Role.id.in_(ids)))
        return list(result.scalars().all())

    async def get_for_user(self, db: AsyncSession, *, user_id: UUID) -> List[Role]:
        """Roles assigned to a user, most privileged first."""
        stmt = (
            select(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.hierarchy_level, Role.slug)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_for_users(self, db: AsyncSession, *, user_ids: Iterable[UUID]) -> Dict[UUID, List[Role]]:
        """Roles of several users at once, keyed by user id."""
        user_ids = list(user_ids)
        roles_by_user: Dict[UUID, List[Role]] = defaultdict(list)
        if not user_ids:
            return roles_by_user
        stmt = (
            select(UserRole.user_id, Role)
            .join(Role, UserRole.role_id == Role.id)
            .where(UserRole.user_id.in_(user_ids))
            .order_by(Role.hierarchy_level, Role.slug)
        )
        result = await db.execute(stmt)
        for user_id, role in result.all():
            roles_by_user[user_id].append(role)
        return roles_by_user

    async def list_assignable(self, db: AsyncSession, *, tenant_id: Optional[UUID], min_level: int) -> List[Role]:
        """System roles and the tenant's custom roles at or below ``min_level``.

        The owner role is never returned.
        """
        scope = Role.tenant_id.is_(None) & Role.is_system_role.is_(True)
        if tenant_id is not None:
            scope = or_(scope, (Role.tenant_id == tenant_id) & Role.is_system_role.is_(False))
        stmt = (
            select(Role)
            .where(scope, Role.hierarchy_level >= min_level, Role.hierarchy_level != OWNER_LEVEL)
            .order_by(Role.is_system_role.desc(), Role.hierarchy_level, Role.name)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def has_assignment(self, db: AsyncSession, *, user_id: UUID, role_id: UUID) -> bool:
        stmt = select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        result = await db.execute(stmt)
        return result.first() is not None

    async def assign(
        self, db: AsyncSession, *, user_id: UUID, role_id: UUID, assigned_by: Optional[UUID] = None
    ) -> UserRole:
        assignment = UserRole(user_id=user_id, role_id=role_id, assigned_by_user_id=assigned_by)
        db.add(assignment)
        await db.flush()
        return assignment

    async def unassign(self, db: AsyncSession, *, user_id: UUID, role_id: UUID) -> int:
        stmt = delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        result = await db.execute(stmt)
        return result.rowcount

    async def unassign_all(self, db: AsyncSession, *, user_id: UUID) -> int:
        result = await db.execute(delete(UserRole).where(UserRole.user_id == user_id))
        return result.rowcount

    async def granted_permission_keys(self, db: AsyncSession, *, role_ids: Iterable[UUID]) -> Set[str]:
        """Permission keys granted to any of the given roles."""
        role_ids = list(role_ids)
        if not role_ids:
            return set()
        stmt = (
            select(Permission.key)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id.in_(role_ids), RolePermission.granted.is_(True))
        )
        result = await db.execute(stmt)
        return set(result.scalars().all())


role = CRUDRole(Role)
