import asyncio
import logging
import sys
import uuid
from typing import Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.hierarchy import DEFAULT_ROLE_SLUG, SYSTEM_ROLE_LEVELS
from atelier.db.session import AsyncSessionLocal, create_tables
from atelier.models import Permission, Role, RolePermission

logger = logging.getLogger(__name__)

# System role ids are derived from the slug so every environment agrees on them
SYSTEM_ROLE_NAMESPACE = uuid.UUID("6f1c1c84-4a8e-4b83-9d0e-2b8f0b6a1d53")

# key -> (module, label, loosest hierarchy level that is granted it)
PERMISSIONS: Dict[str, Tuple[str, str, int]] = {
    "team.view": ("team", "View team members", 2),
    "team.invite": ("team", "Invite team members", 1),
    "team.edit": ("team", "Edit team roles", 1),
    "leads.view": ("leads", "View leads", 4),
    "leads.create": ("leads", "Create leads", 4),
    "leads.edit": ("leads", "Edit leads", 2),
    "leads.assign": ("leads", "Assign leads", 2),
    "leads.delete": ("leads", "Delete leads", 1),
    "projects.view": ("projects", "View projects", 4),
    "projects.create": ("projects", "Create projects", 2),
    "projects.edit": ("projects", "Edit projects", 2),
    "projects.delete": ("projects", "Delete projects", 1),
    "tasks.view": ("tasks", "View tasks", 5),
    "tasks.assign": ("tasks", "Assign tasks", 2),
    "reports.view": ("reports", "View reports", 2),
    "settings.view": ("settings", "View workspace settings", 1),
}


def system_role_id(slug: str) -> uuid.UUID:
    return uuid.uuid5(SYSTEM_ROLE_NAMESPACE, slug)


def _role_name(slug: str) -> str:
    return slug.replace("_", " ").title()


async def _create_system_roles(db: AsyncSession) -> List[Role]:
    """Create system roles if they don't exist.

    Args:
        db: Database session

    Raises:
        SQLAlchemyError: If database operation fails
    """
    roles = []
    for slug, level in SYSTEM_ROLE_LEVELS.items():
        role = await db.get(Role, system_role_id(slug))
        if role is None:
            role = Role(
                id=system_role_id(slug),
                name=_role_name(slug),
                slug=slug,
                tenant_id=None,
                hierarchy_level=int(level),
                is_system_role=True,
                is_default=slug == DEFAULT_ROLE_SLUG,
            )
            db.add(role)
            logger.info(f"Created system role: {slug} (level {level})")
        else:
            logger.info(f"System role already exists: {slug} - skipping")
        roles.append(role)
    await db.flush()
    return roles


async def _create_permissions(db: AsyncSession, roles: List[Role]) -> None:
    """Create the permission catalogue and grant it to system roles by level."""
    for key, (module, label, max_level) in PERMISSIONS.items():
        result = await db.execute(select(Permission).where(Permission.key == key))
        permission = result.scalar_one_or_none()
        if permission is not None:
            logger.info(f"Permission already exists: {key} - skipping")
            continue

        permission = Permission(key=key, module=module, label=label)
        db.add(permission)
        await db.flush()
        for role in roles:
            db.add(
                RolePermission(
                    role_id=role.id,
                    permission_id=permission.id,
                    granted=role.hierarchy_level <= max_level,
                )
            )
        logger.info(f"Created permission: {key}")
    await db.flush()


async def seed(db: AsyncSession) -> None:
    """Seed system roles and permissions into an open session, without committing."""
    roles = await _create_system_roles(db)
    await _create_permissions(db, roles)


async def init_db() -> None:
    """Create missing tables and seed reference data."""
    await create_tables()
    async with AsyncSessionLocal() as db:
        try:
            await seed(db)
            await db.commit()
            logger.info("Database initialization completed successfully")
        except Exception as e:
            logger.error(f"Database initialization failed: {str(e)}")
            await db.rollback()
            raise


def main() -> None:
    """Main function to run database initialization."""
    try:
        asyncio.run(init_db())
        print("✅ Database initialization completed successfully!")
    except Exception as e:
        print(f"❌ Database initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
