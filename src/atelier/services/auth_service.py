import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt
from supabase import Client, create_client

from atelier.core.config import settings
from atelier.core.errors import SystemConfigurationError, Unauthenticated
from atelier.schemas.auth import SessionIdentity
from atelier.schemas.enums import UserStatus

# Supabase has no "disabled" flag; a very long ban is how accounts get locked out.
BAN_FOREVER = "876000h"
BAN_LIFTED = "none"


class AuthProvider(Protocol):
    """External identity provider as seen by the guard and the team service."""

    async def verify_session(self, token: str) -> SessionIdentity: ...

    async def sign_out(self, token: str) -> None: ...

    async def set_user_status(self, user_id: UUID, status: UserStatus) -> None: ...

    async def invite_user(self, email: str, metadata: Dict[str, Any]) -> UUID: ...

    async def resend_invite(self, email: str) -> None: ...

    async def delete_user(self, user_id: UUID) -> None: ...

    async def set_password(self, user_id: UUID, password: str) -> None: ...


class SupabaseAuthService:
    """Auth provider backed by Supabase Auth.

    Session checks use the anon key client, admin calls (sign out, ban,
    invite) use the service key client.
    """

    def __init__(self, supabase: Optional[Client] = None, admin_supabase: Optional[Client] = None):
        self.logger = logging.getLogger(__name__)
        self.supabase = supabase or create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        self._admin_supabase = admin_supabase

    @property
    def admin_supabase(self) -> Client:
        if self._admin_supabase is None:
            if not settings.SUPABASE_SERVICE_KEY:
                raise SystemConfigurationError("SUPABASE_SERVICE_KEY is not configured")
            self._admin_supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        return self._admin_supabase

    async def verify_session(self, token: str) -> SessionIdentity:
        """Verify an access token with Supabase and return the session's user.

        Raises:
            Unauthenticated: If the token is invalid or expired
        """
        try:
            self.logger.debug("Attempting to verify token")
            response = self.supabase.auth.get_user(token)
        except Exception as e:
            error_str = str(e)
            self.logger.error(f"Token verification failed: {error_str}")
            if "expired" in error_str.lower():
                raise Unauthenticated("Token has expired")
            raise Unauthenticated("Invalid token")

        if not response or not response.user:
            self.logger.warning("Token verification failed: No valid user found")
            raise Unauthenticated("Invalid token")

        self.logger.debug(f"Token verified for user: {response.user.email}")
        return SessionIdentity(user_id=UUID(str(response.user.id)), email=response.user.email)

    async def sign_out(self, token: str) -> None:
        try:
            self.admin_supabase.auth.admin.sign_out(token, "global")
        except Exception as e:
            # the account is refused anyway, a failed revoke only delays expiry
            self.logger.error(f"Failed to revoke session: {str(e)}")

    async def set_user_status(self, user_id: UUID, status: UserStatus) -> None:
        attributes: Dict[str, Any] = {"app_metadata": {"status": status.value}}
        if status == UserStatus.DISABLED:
            attributes["ban_duration"] = BAN_FOREVER
        elif status == UserStatus.ACTIVE:
            attributes["ban_duration"] = BAN_LIFTED
        self.admin_supabase.auth.admin.update_user_by_id(str(user_id), attributes)
        self.logger.info(f"Auth status of user {user_id} set to {status.value}")

    async def invite_user(self, email: str, metadata: Dict[str, Any]) -> UUID:
        response = self.admin_supabase.auth.admin.invite_user_by_email(email, {"data": metadata})
        if not response or not response.user:
            raise Exception(f"Failed to invite {email} in Supabase")
        self.logger.info(f"Invitation sent to {email}")
        return UUID(str(response.user.id))

    async def resend_invite(self, email: str) -> None:
        # the auth account already exists, so a recovery mail lets them set a password
        self.supabase.auth.reset_password_for_email(email)
        self.logger.info(f"Invitation resent to {email}")

    async def delete_user(self, user_id: UUID) -> None:
        self.admin_supabase.auth.admin.delete_user(str(user_id))
        self.logger.info(f"Auth account {user_id} deleted")

    async def set_password(self, user_id: UUID, password: str) -> None:
        self.admin_supabase.auth.admin.update_user_by_id(str(user_id), {"password": password})
        self.logger.info(f"Password of user {user_id} reset")


class JwtAuthService(SupabaseAuthService):
    """Verifies Supabase access tokens locally with the project's JWT secret.

    Saves a round trip per request. Admin operations still go to Supabase.
    """

    def __init__(self, secret: str, supabase: Optional[Client] = None, admin_supabase: Optional[Client] = None):
        self.logger = logging.getLogger(__name__)
        self.secret = secret
        self._supabase = supabase
        self._admin_supabase = admin_supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        return self._supabase

    async def verify_session(self, token: str) -> SessionIdentity:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[settings.JWT_ALGORITHM],
                audience=settings.JWT_AUDIENCE,
            )
        except ExpiredSignatureError:
            raise Unauthenticated("Token has expired")
        except JWTError as e:
            self.logger.warning(f"Token verification failed: {str(e)}")
            raise Unauthenticated("Invalid token")

        subject = claims.get("sub")
        try:
            user_id = UUID(str(subject))
        except ValueError:
            self.logger.error(f"Token subject is not a user id: {subject}")
            raise Unauthenticated("Invalid token")
        return SessionIdentity(user_id=user_id, email=claims.get("email"))


@lru_cache(maxsize=1)
def get_auth_provider() -> AuthProvider:
    """Process-wide auth provider, chosen from settings."""
    if settings.SUPABASE_JWT_SECRET:
        return JwtAuthService(settings.SUPABASE_JWT_SECRET)
    return SupabaseAuthService()
