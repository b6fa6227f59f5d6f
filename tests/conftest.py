"""Shared fixtures: in-memory database, seeded tenant, fake auth provider and API client."""

import os
import sys
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

# Make the src layout importable without installing the package
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from atelier.core.errors import Unauthenticated
from atelier.db.init_db import seed, system_role_id
from atelier.db.session import get_db
from atelier.main import create_app
from atelier.models import Base, Tenant, User, UserRole
from atelier.schemas.auth import AuthenticatedUser, SessionIdentity
from atelier.schemas.enums import UserStatus
from atelier.services.auth_service import get_auth_provider


class FakeAuthProvider:
    """Auth provider that knows a fixed set of tokens and records admin calls."""

    def __init__(self):
        self.sessions: Dict[str, SessionIdentity] = {}
        self.signed_out: List[str] = []
        self.statuses: Dict[uuid.UUID, UserStatus] = {}
        self.invited: List[Tuple[str, Dict[str, Any]]] = []
        self.resent: List[str] = []
        self.deleted: List[uuid.UUID] = []
        self.passwords: Dict[uuid.UUID, str] = {}
        self.verify_calls = 0

    def login(self, user: User) -> str:
        token = f"token-{user.id}"
        self.sessions[token] = SessionIdentity(user_id=user.id, email=user.email)
        return token

    async def verify_session(self, token: str) -> SessionIdentity:
        self.verify_calls += 1
        if token not in self.sessions:
            raise Unauthenticated("Invalid token")
        return self.sessions[token]

    async def sign_out(self, token: str) -> None:
        self.signed_out.append(token)

    async def set_user_status(self, user_id: uuid.UUID, status: UserStatus) -> None:
        self.statuses[user_id] = status

    async def invite_user(self, email: str, metadata: Dict[str, Any]) -> uuid.UUID:
        self.invited.append((email, metadata))
        return uuid.uuid4()

    async def resend_invite(self, email: str) -> None:
        self.resent.append(email)

    async def delete_user(self, user_id: uuid.UUID) -> None:
        self.deleted.append(user_id)

    async def set_password(self, user_id: uuid.UUID, password: str) -> None:
        self.passwords[user_id] = password


def as_actor(user: User) -> AuthenticatedUser:
    return AuthenticatedUser.model_validate(user, from_attributes=True)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autocommit=False, autoflush=False
    )
    async with session_factory() as session:
        await seed(session)
        await session.commit()
        yield session


@pytest_asyncio.fixture
async def tenant(db):
    tenant = Tenant(name="Studio Nord", slug="studio-nord")
    db.add(tenant)
    await db.commit()
    return tenant


@pytest_asyncio.fixture
async def other_tenant(db):
    tenant = Tenant(name="Casa Sud", slug="casa-sud")
    db.add(tenant)
    await db.commit()
    return tenant


@pytest.fixture
def make_member(db, tenant):
    """Factory creating a user in ``tenant`` holding the given system roles."""

    async def _make(
        email: str,
        role_slugs: Iterable[str] = (),
        status: UserStatus = UserStatus.ACTIVE,
        is_super_admin: bool = False,
        tenant_id: Optional[uuid.UUID] = None,
    ) -> User:
        user = User(
            tenant_id=tenant_id or tenant.id,
            email=email,
            name=email.split("@")[0].title(),
            status=status,
            is_super_admin=is_super_admin,
        )
        db.add(user)
        await db.flush()
        for slug in role_slugs:
            db.add(UserRole(user_id=user.id, role_id=system_role_id(slug)))
        await db.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def owner(make_member):
    return await make_member("olivia@studionord.com", ["owner"], is_super_admin=True)


@pytest_asyncio.fixture
async def admin(make_member):
    return await make_member("adam@studionord.com", ["admin"])


@pytest.fixture
def auth_provider():
    return FakeAuthProvider()


@pytest_asyncio.fixture
async def client(db, auth_provider):
    app = create_app()

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
