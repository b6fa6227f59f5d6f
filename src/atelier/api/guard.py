"""Request guard for protected endpoints.

Every protected handler runs the guard first. It authenticates the session,
loads the caller's application account and, when asked, checks fine-grained
permissions. The resulting ``AuthenticatedUser`` is passed explicitly to the
services; nothing is stored on the request or in globals.
"""
import logging
from typing import Annotated, Callable, Optional

from fastapi import Depends, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.ext.asyncio import AsyncSession

from atelier.core.config import settings
from atelier.core.errors import (
    AccountNotActive,
    AppError,
    InsufficientAuthority,
    NotFound,
    Unauthenticated,
)
from atelier.core.session_cache import SessionCache, session_cache
from atelier.crud.crud_user import user as crud_user
from atelier.db.session import SessionDep
from atelier.schemas.auth import AuthenticatedUser, GuardOptions, GuardResult
from atelier.schemas.enums import UserStatus
from atelier.services.auth_service import AuthProvider, get_auth_provider
from atelier.services.permission_resolver import PermissionResolver, permission_resolver

logger = logging.getLogger(__name__)


def extract_token(request: Request) -> Optional[str]:
    """Session token from the ``Authorization: Bearer`` header or the session cookie."""
    scheme, credentials = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or None


class ApiGuard:
    def __init__(
        self,
        auth_provider: AuthProvider,
        resolver: PermissionResolver = permission_resolver,
        cache: SessionCache = session_cache,
    ):
        self.auth_provider = auth_provider
        self.resolver = resolver
        self.cache = cache

    async def protect(
        self, request: Request, db: AsyncSession, options: Optional[GuardOptions] = None
    ) -> GuardResult:
        """Run the guard and report the outcome instead of raising."""
        try:
            user = await self.authenticate(request, db, options)
        except AppError as e:
            return GuardResult.deny(e.message, e.status_code)
        except Exception as e:
            logger.error(f"Guard failed on {request.method} {request.url.path}: {str(e)}", exc_info=True)
            return GuardResult.deny("Internal server error", 500)
        return GuardResult.allow(user)

    async def authenticate(
        self, request: Request, db: AsyncSession, options: Optional[GuardOptions] = None
    ) -> AuthenticatedUser:
        """Run the guard, raising the matching ``AppError`` on rejection."""
        token = extract_token(request)
        if not token:
            raise Unauthenticated()

        current = self.cache.get(token)
        if current is None:
            current = await self._load_account(db, token)
            self.cache.set(token, str(current.id), current)

        await self._check_status(current, token, options)
        if options and options.required_permissions:
            await self._check_permissions(db, current, options)
        return current

    async def _load_account(self, db: AsyncSession, token: str) -> AuthenticatedUser:
        identity = await self.auth_provider.verify_session(token)

        user = await crud_user.get(db, id=identity.user_id)
        if user is None:
            logger.warning(f"Session for {identity.email} has no application account")
            raise NotFound("Account not found")

        return AuthenticatedUser.model_validate(user, from_attributes=True)

    async def _check_status(self, current: AuthenticatedUser, token: str, options: Optional[GuardOptions]) -> None:
        if current.status == UserStatus.ACTIVE:
            return
        if current.status == UserStatus.DISABLED:
            await self.auth_provider.sign_out(token)
            raise AccountNotActive("Your account has been deactivated")
        if not (options and options.allow_invited):
            raise AccountNotActive("Your account has not been activated")

    async def _check_permissions(self, db: AsyncSession, current: AuthenticatedUser, options: GuardOptions) -> None:
        resolved = await self.resolver.resolve(db, current.id)
        checks = [resolved.has_permission(key) for key in options.required_permissions]
        allowed = all(checks) if options.require_all else any(checks)
        if not allowed:
            logger.info(f"User {current.id} lacks {options.required_permissions}")
            raise InsufficientAuthority("Insufficient permissions")


async def get_current_user(
    request: Request,
    db: SessionDep,
    auth_provider: AuthProvider = Depends(get_auth_provider),
) -> AuthenticatedUser:
    """Get the current authenticated, active user."""
    return await ApiGuard(auth_provider).authenticate(request, db)


def require_permissions(*keys: str, require_all: bool = True) -> Callable:
    """Dependency factory: the current user, provided they hold ``keys``."""
    options = GuardOptions(required_permissions=list(keys), require_all=require_all)

    async def dependency(
        request: Request,
        db: SessionDep,
        auth_provider: AuthProvider = Depends(get_auth_provider),
    ) -> AuthenticatedUser:
        return await ApiGuard(auth_provider).authenticate(request, db, options)

    return dependency


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]


async def get_invited_or_active_user(
    request: Request,
    db: SessionDep,
    auth_provider: AuthProvider = Depends(get_auth_provider),
) -> AuthenticatedUser:
    """Like ``get_current_user`` but also admits users whose invitation is still pending."""
    return await ApiGuard(auth_provider).authenticate(request, db, GuardOptions(allow_invited=True))


InvitedOrActiveUser = Annotated[AuthenticatedUser, Depends(get_invited_or_active_user)]
