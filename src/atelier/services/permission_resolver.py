import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core import pbac
from atelier.core.errors import NotFound
from atelier.core.hierarchy import effective_level
from atelier.crud.crud_role import role as crud_role
from atelier.crud.crud_user import user as crud_user
from atelier.schemas.auth import ResolvedPermissions

logger = logging.getLogger(__name__)


class PermissionResolver:
    """Turns a user's role assignments into an effective level and permission set."""

    async def resolve(self, db: AsyncSession, user_id: UUID) -> ResolvedPermissions:
        user = await crud_user.get(db, id=user_id)
        if user is None:
            raise NotFound("User not found")

        roles = await crud_role.get_for_user(db, user_id=user_id)
        role_slugs = {role.slug for role in roles}
        level = effective_level((role.hierarchy_level for role in roles), user.is_super_admin)
        granted = await crud_role.granted_permission_keys(db, role_ids=[role.id for role in roles])

        resolved = ResolvedPermissions(
            user_id=user_id,
            role_slugs=role_slugs,
            min_hierarchy_level=level,
            is_super_admin=user.is_super_admin,
            permissions=pbac.evaluate(role_slugs, level),
            granted_permissions=granted,
        )
        logger.debug(f"Resolved user {user_id}: level={level} roles={sorted(role_slugs)}")
        return resolved

    async def level_of(self, db: AsyncSession, user_id: UUID) -> int:
        """Effective hierarchy level only, for target-side comparisons."""
        return (await self.resolve(db, user_id)).min_hierarchy_level


permission_resolver = PermissionResolver()
