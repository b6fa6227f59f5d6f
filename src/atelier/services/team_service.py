"""Team management under the role hierarchy.

Every operation receives the acting ``AuthenticatedUser`` explicitly and
compares effective hierarchy levels before touching anything. Writes use
conditional updates on the expected prior state, and multi-row changes run
in a single transaction.
"""
import logging
import secrets
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.errors import (
    ConcurrentModification,
    ConflictError,
    InsufficientAuthority,
    InvalidState,
    NotFound,
    SystemConfigurationError,
)
from atelier.core.hierarchy import (
    ADMIN_LEVEL,
    ADMIN_SLUG,
    OWNER_LEVEL,
    OWNER_SLUG,
    can_assign_level,
    min_assignable_level,
    outranks,
)
from atelier.core.session_cache import SessionCache, session_cache
from atelier.crud.crud_role import role as crud_role
from atelier.crud.crud_user import user as crud_user
from atelier.models import Role, User
from atelier.schemas.auth import AuthenticatedUser
from atelier.schemas.enums import UserStatus
from atelier.schemas.role import RoleSummary
from atelier.schemas.user import PasswordResetResult, TeamMember, UserPublic
from atelier.services.auth_service import AuthProvider
from atelier.services.permission_resolver import PermissionResolver, permission_resolver

logger = logging.getLogger(__name__)


def to_team_member(user: User, roles: Iterable[Role]) -> TeamMember:
    public = UserPublic.model_validate(user)
    return TeamMember(**public.model_dump(), roles=[RoleSummary.model_validate(role) for role in roles])


class TeamService:
    def __init__(
        self,
        auth_provider: AuthProvider,
        resolver: PermissionResolver = permission_resolver,
        cache: SessionCache = session_cache,
    ):
        self.auth_provider = auth_provider
        self.resolver = resolver
        self.cache = cache

    async def list_members(self, db: AsyncSession, actor: AuthenticatedUser) -> List[TeamMember]:
        """All users of the actor's tenant, whatever their status."""
        if actor.tenant_id is None:
            return []
        users = await crud_user.list_by_tenant(db, tenant_id=actor.tenant_id)
        roles_by_user = await crud_role.get_for_users(db, user_ids=[u.id for u in users])
        return [to_team_member(u, roles_by_user.get(u.id, [])) for u in users]

    async def list_assignable_roles(self, db: AsyncSession, actor: AuthenticatedUser) -> List[RoleSummary]:
        """Roles the actor may hand out. Admin is offered to the owner only."""
        actor_level = await self.resolver.level_of(db, actor.id)
        roles = await crud_role.list_assignable(
            db, tenant_id=actor.tenant_id, min_level=min_assignable_level(actor_level)
        )
        return [RoleSummary.model_validate(role) for role in roles]

    async def reactivate_member(self, db: AsyncSession, actor: AuthenticatedUser, member_id: UUID) -> UserPublic:
        """disabled -> active, only for a target the actor strictly outranks."""
        target = await self._get_member(db, actor, member_id)
        if target.status != UserStatus.DISABLED:
            raise InvalidState("Only deactivated members can be reactivated")

        await self._require_outranks(db, actor, target, "You cannot reactivate a member at or above your level")

        await self._set_status(db, target, [UserStatus.DISABLED], UserStatus.ACTIVE)
        logger.info(f"User {actor.id} reactivated member {target.id}")
        return UserPublic.model_validate(target)

    async def deactivate_member(self, db: AsyncSession, actor: AuthenticatedUser, member_id: UUID) -> UserPublic:
        """active|invited -> disabled, only for a target the actor strictly outranks."""
        if member_id == actor.id:
            raise InsufficientAuthority("You cannot deactivate yourself")

        target = await self._get_member(db, actor, member_id)
        if target.is_super_admin:
            raise InsufficientAuthority("The owner cannot be deactivated")
        if target.status == UserStatus.DISABLED:
            raise InvalidState("Member is already deactivated")

        await self._require_outranks(db, actor, target, "You cannot deactivate a member at or above your level")

        await self._set_status(db, target, [UserStatus.ACTIVE, UserStatus.INVITED], UserStatus.DISABLED)
        logger.info(f"User {actor.id} deactivated member {target.id}")
        return UserPublic.model_validate(target)

    async def transfer_ownership(
        self, db: AsyncSession, actor: AuthenticatedUser, new_owner_id: UUID
    ) -> TeamMember:
        """Hand the owner flag and Owner role to another active member.

        The outgoing owner keeps Admin. All writes commit together or not at all.
        """
        if not actor.is_super_admin:
            raise InsufficientAuthority("Only the owner can transfer ownership")
        if new_owner_id == actor.id:
            raise InvalidState("You already own this workspace")

        target = await self._get_member(db, actor, new_owner_id)
        if target.status != UserStatus.ACTIVE:
            raise InvalidState("Ownership can only be transferred to an active member")

        owner_role = await crud_role.get_system_role(db, slug=OWNER_SLUG)
        admin_role = await crud_role.get_system_role(db, slug=ADMIN_SLUG)
        if owner_role is None or admin_role is None:
            logger.error("System owner/admin role missing, cannot transfer ownership")
            raise SystemConfigurationError()

        target_id = target.id
        try:
            if not await crud_user.compare_and_set_super_admin(db, id=actor.id, expected=True, new=False):
                raise ConcurrentModification("Ownership changed while processing the transfer")
            if not await crud_user.compare_and_set_super_admin(db, id=target.id, expected=False, new=True):
                raise ConcurrentModification("Ownership changed while processing the transfer")

            await crud_role.unassign(db, user_id=actor.id, role_id=owner_role.id)
            if not await crud_role.has_assignment(db, user_id=actor.id, role_id=admin_role.id):
                await crud_role.assign(db, user_id=actor.id, role_id=admin_role.id, assigned_by=actor.id)

            await crud_role.unassign_all(db, user_id=target.id)
            await crud_role.assign(db, user_id=target.id, role_id=owner_role.id, assigned_by=actor.id)

            await db.commit()
        except Exception:
            await db.rollback()
            logger.warning(f"Ownership transfer from {actor.id} to {target_id} rolled back")
            raise

        self.cache.invalidate_user(str(actor.id))
        self.cache.invalidate_user(str(target_id))
        logger.info(f"Ownership transferred from {actor.id} to {target_id}")

        target = await crud_user.get(db, id=target_id)
        return to_team_member(target, [owner_role])

    async def update_member_roles(
        self, db: AsyncSession, actor: AuthenticatedUser, member_id: UUID, role_ids: Sequence[UUID]
    ) -> TeamMember:
        """Replace a member's roles with ``role_ids``. An empty list leaves the member roleless."""
        actor_level = await self._require_manager_of_team(db, actor, "Only owners and admins can change roles")

        target = await self._get_member(db, actor, member_id)
        if target.is_super_admin:
            raise InsufficientAuthority("The owner's roles can only change through an ownership transfer")
        await self._require_outranks(db, actor, target, "You cannot change roles of a member at or above your level")

        roles = await self._assignable_roles(db, actor, actor_level, role_ids, allow_empty=True)

        try:
            await crud_role.unassign_all(db, user_id=target.id)
            for role in roles:
                await crud_role.assign(db, user_id=target.id, role_id=role.id, assigned_by=actor.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        self.cache.invalidate_user(str(target.id))
        logger.info(f"User {actor.id} set roles of {target.id} to {[r.slug for r in roles]}")
        return to_team_member(target, sorted(roles, key=lambda r: (r.hierarchy_level, r.slug)))

    async def invite_member(
        self,
        db: AsyncSession,
        actor: AuthenticatedUser,
        email: str,
        name: Optional[str],
        role_ids: Sequence[UUID],
    ) -> TeamMember:
        """Invite a new member into the actor's tenant with the given roles."""
        actor_level = await self._require_manager_of_team(db, actor, "Only owners and admins can invite members")
        roles = await self._assignable_roles(db, actor, actor_level, role_ids)

        if await crud_user.get_by_email(db, email=email) is not None:
            raise ConflictError("A user with this email already exists")

        auth_user_id = await self.auth_provider.invite_user(
            email,
            {"tenant_id": str(actor.tenant_id), "name": name, "invited_by": str(actor.id)},
        )

        try:
            new_user = await crud_user.create(
                db,
                obj_in={
                    "id": auth_user_id,
                    "tenant_id": actor.tenant_id,
                    "email": email,
                    "name": name,
                    "status": UserStatus.INVITED,
                    "is_super_admin": False,
                },
            )
            for role in roles:
                await crud_role.assign(db, user_id=new_user.id, role_id=role.id, assigned_by=actor.id)
            await db.commit()
        except Exception:
            await db.rollback()
            logger.error(f"Invitation for {email} was sent but the member could not be stored")
            raise

        logger.info(f"User {actor.id} invited {email} as {[r.slug for r in roles]}")
        return to_team_member(new_user, sorted(roles, key=lambda r: (r.hierarchy_level, r.slug)))

    async def list_invitations(self, db: AsyncSession, actor: AuthenticatedUser) -> List[TeamMember]:
        """Pending invitations of the actor's tenant, newest first."""
        await self._require_manager_of_team(db, actor, "Only owners and admins can view invitations")
        users = await crud_user.list_by_status(db, tenant_id=actor.tenant_id, status=UserStatus.INVITED)
        roles_by_user = await crud_role.get_for_users(db, user_ids=[u.id for u in users])
        return [to_team_member(u, roles_by_user.get(u.id, [])) for u in users]

    async def resend_invitation(self, db: AsyncSession, actor: AuthenticatedUser, member_id: UUID) -> UserPublic:
        await self._require_manager_of_team(db, actor, "Only owners and admins can resend invitations")
        target = await self._get_member(db, actor, member_id)
        if target.status != UserStatus.INVITED:
            raise InvalidState("This invitation has already been accepted")

        await self.auth_provider.resend_invite(target.email)
        logger.info(f"User {actor.id} resent the invitation of {target.id}")
        return UserPublic.model_validate(target)

    async def cancel_invitation(self, db: AsyncSession, actor: AuthenticatedUser, member_id: UUID) -> None:
        """Remove an invited member that never signed in, with their roles and auth account."""
        await self._require_manager_of_team(db, actor, "Only owners and admins can cancel invitations")
        target = await self._get_member(db, actor, member_id)
        if target.status != UserStatus.INVITED:
            raise InvalidState("Cannot cancel an already accepted invitation")

        target_id = target.id
        try:
            await crud_role.unassign_all(db, user_id=target_id)
            if not await crud_user.delete_if_status(db, id=target_id, expected=UserStatus.INVITED):
                raise ConcurrentModification("The invitation was accepted while cancelling it")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        db.expunge(target)
        self.cache.invalidate_user(str(target_id))
        logger.info(f"User {actor.id} cancelled the invitation of {target_id}")
        try:
            await self.auth_provider.delete_user(target_id)
        except Exception as e:
            logger.error(f"Failed to delete auth account of cancelled invitation {target_id}: {str(e)}")

    async def complete_invite(self, db: AsyncSession, actor: AuthenticatedUser) -> UserPublic:
        """invited -> active for the caller, once they have set a password."""
        user = await crud_user.get(db, id=actor.id)
        if user is None:
            raise NotFound("Account not found")
        if user.status == UserStatus.ACTIVE:
            raise InvalidState("Your invitation has already been accepted")
        if user.status != UserStatus.INVITED:
            raise InsufficientAuthority("Your account has been deactivated")

        await self._set_status(db, user, [UserStatus.INVITED], UserStatus.ACTIVE)
        logger.info(f"User {user.id} accepted their invitation")
        return UserPublic.model_validate(user)

    async def reset_password(
        self,
        db: AsyncSession,
        actor: AuthenticatedUser,
        member_id: UUID,
        password: Optional[str] = None,
    ) -> PasswordResetResult:
        """Set a member's password, generating one when none is given.

        Only owners and admins may do this, never on themselves or the owner,
        and only on members they strictly outrank.
        """
        await self._require_manager_of_team(db, actor, "Only owners and admins can reset passwords")
        if member_id == actor.id:
            raise InvalidState("Use your account settings to change your own password")

        target = await self._get_member(db, actor, member_id)
        if target.is_super_admin:
            raise InsufficientAuthority("The owner's password cannot be reset")
        await self._require_outranks(
            db, actor, target, "You cannot reset the password of a member at or above your level"
        )

        generated = not password
        new_password = secrets.token_urlsafe(12) if generated else password
        await self.auth_provider.set_password(target.id, new_password)

        self.cache.invalidate_user(str(target.id))
        logger.info(f"User {actor.id} reset the password of {target.id}")
        return PasswordResetResult(
            member_id=target.id,
            name=target.name,
            email=target.email,
            temporary_password=new_password,
            password_generated=generated,
        )

    async def _get_member(self, db: AsyncSession, actor: AuthenticatedUser, member_id: UUID) -> User:
        target = await crud_user.get_in_tenant(db, id=member_id, tenant_id=actor.tenant_id)
        if target is None:
            raise NotFound("Member not found")
        return target

    async def _require_outranks(self, db: AsyncSession, actor: AuthenticatedUser, target: User, message: str) -> None:
        actor_level = await self.resolver.level_of(db, actor.id)
        target_level = await self.resolver.level_of(db, target.id)
        if not outranks(actor_level, target_level):
            logger.info(f"User {actor.id} (level {actor_level}) blocked on {target.id} (level {target_level})")
            raise InsufficientAuthority(message)

    async def _require_manager_of_team(self, db: AsyncSession, actor: AuthenticatedUser, message: str) -> int:
        actor_level = await self.resolver.level_of(db, actor.id)
        if actor_level > ADMIN_LEVEL:
            raise InsufficientAuthority(message)
        return actor_level

    async def _assignable_roles(
        self,
        db: AsyncSession,
        actor: AuthenticatedUser,
        actor_level: int,
        role_ids: Sequence[UUID],
        allow_empty: bool = False,
    ) -> List[Role]:
        wanted = set(role_ids)
        if not wanted:
            if allow_empty:
                return []
            raise InvalidState("At least one role is required")

        roles = await crud_role.get_many(db, ids=wanted)
        visible = [r for r in roles if r.tenant_id is None or r.tenant_id == actor.tenant_id]
        if len(visible) != len(wanted):
            raise InvalidState("One or more roles do not exist")

        for role in visible:
            if role.hierarchy_level == OWNER_LEVEL:
                raise InsufficientAuthority("The owner role cannot be assigned")
            if not can_assign_level(actor_level, role.hierarchy_level):
                raise InsufficientAuthority(f"You cannot assign the {role.name} role")
        return visible

    async def _set_status(
        self, db: AsyncSession, target: User, expected: List[UserStatus], new: UserStatus
    ) -> None:
        try:
            if not await crud_user.compare_and_set_status(db, id=target.id, expected=expected, new=new):
                raise ConcurrentModification()
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await db.refresh(target)
        self.cache.invalidate_user(str(target.id))
        try:
            await self.auth_provider.set_user_status(target.id, new)
        except Exception as e:
            # the application row is authoritative for the guard
            logger.error(f"Failed to sync auth status of {target.id}: {str(e)}")
