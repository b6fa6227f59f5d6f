import uuid

import pytest

from atelier.core.errors import NotFound
from atelier.core.hierarchy import LEAST_PRIVILEGED_LEVEL
from atelier.services.permission_resolver import permission_resolver


@pytest.mark.asyncio
async def test_level_is_minimum_across_roles(db, make_member):
    user = await make_member("sam@studionord.com", ["sales", "design_manager"])
    resolved = await permission_resolver.resolve(db, user.id)
    assert resolved.min_hierarchy_level == 2
    assert resolved.role_slugs == {"sales", "design_manager"}
    assert resolved.permissions["is_manager"]
    assert not resolved.permissions["can_move_lead_to_won"]


@pytest.mark.asyncio
async def test_roleless_user_is_least_privileged(db, make_member):
    user = await make_member("nobody@studionord.com")
    resolved = await permission_resolver.resolve(db, user.id)
    assert resolved.min_hierarchy_level == LEAST_PRIVILEGED_LEVEL
    assert resolved.role_slugs == set()
    assert resolved.granted_permissions == set()


@pytest.mark.asyncio
async def test_super_admin_flag_overrides_roles(db, make_member):
    user = await make_member("flag@studionord.com", ["limited"], is_super_admin=True)
    resolved = await permission_resolver.resolve(db, user.id)
    assert resolved.min_hierarchy_level == 0
    assert resolved.permissions["is_owner"]
    assert resolved.has_permission("anything.at.all")


@pytest.mark.asyncio
async def test_granted_permissions_come_from_role_grants(db, make_member):
    manager = await make_member("mia@studionord.com", ["project_manager"])
    resolved = await permission_resolver.resolve(db, manager.id)
    assert "projects.edit" in resolved.granted_permissions
    assert "team.view" in resolved.granted_permissions
    assert "team.invite" not in resolved.granted_permissions
    assert not resolved.has_permission("team.invite")


@pytest.mark.asyncio
async def test_missing_user_raises_not_found(db):
    with pytest.raises(NotFound):
        await permission_resolver.resolve(db, uuid.uuid4())
