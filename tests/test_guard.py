import pytest
from starlette.requests import Request

from atelier.api.guard import ApiGuard, extract_token
from atelier.core.errors import AccountNotActive, InsufficientAuthority, Unauthenticated
from atelier.core.session_cache import SessionCache
from atelier.schemas.auth import GuardOptions
from atelier.schemas.enums import UserStatus


def make_request(token=None, cookie=None):
    headers = []
    if token:
        headers.append((b"authorization", f"Bearer {token}".encode()))
    if cookie:
        headers.append((b"cookie", f"sb-access-token={cookie}".encode()))
    return Request({"type": "http", "method": "GET", "path": "/api/v1/team/members", "headers": headers, "query_string": b""})


def test_token_is_read_from_header_then_cookie():
    assert extract_token(make_request(token="abc")) == "abc"
    assert extract_token(make_request(cookie="from-cookie")) == "from-cookie"
    assert extract_token(make_request()) is None


@pytest.mark.asyncio
async def test_missing_token_is_401(db, auth_provider):
    result = await ApiGuard(auth_provider).protect(make_request(), db)
    assert not result.success
    assert result.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_is_401(db, auth_provider):
    result = await ApiGuard(auth_provider).protect(make_request(token="forged"), db)
    assert result.status_code == 401
    assert result.error == "Invalid token"


@pytest.mark.asyncio
async def test_active_member_is_allowed(db, auth_provider, make_member):
    user = await make_member("sara@studionord.com", ["sales"])
    token = auth_provider.login(user)
    result = await ApiGuard(auth_provider).protect(make_request(token=token), db)
    assert result.success
    assert result.user.id == user.id
    assert result.user.tenant_id == user.tenant_id
    assert result.user.status == UserStatus.ACTIVE


@pytest.mark.asyncio
async def test_session_without_account_is_404(db, auth_provider, make_member):
    user = await make_member("ghost@studionord.com")
    token = auth_provider.login(user)
    await db.delete(user)
    await db.commit()
    result = await ApiGuard(auth_provider).protect(make_request(token=token), db)
    assert result.status_code == 404
    assert result.error == "Account not found"


@pytest.mark.asyncio
async def test_disabled_account_is_403_and_signed_out(db, auth_provider, make_member):
    user = await make_member("dora@studionord.com", ["sales"], status=UserStatus.DISABLED)
    token = auth_provider.login(user)
    result = await ApiGuard(auth_provider).protect(make_request(token=token), db)
    assert result.status_code == 403
    assert result.error == "Your account has been deactivated"
    assert auth_provider.signed_out == [token]


@pytest.mark.asyncio
async def test_invited_account_is_403(db, auth_provider, make_member):
    user = await make_member("ivy@studionord.com", ["sales"], status=UserStatus.INVITED)
    token = auth_provider.login(user)
    with pytest.raises(AccountNotActive):
        await ApiGuard(auth_provider).authenticate(make_request(token=token), db)
    assert auth_provider.signed_out == []


@pytest.mark.asyncio
async def test_required_permissions_all_or_any(db, auth_provider, make_member):
    user = await make_member("sid@studionord.com", ["sales"])
    token = auth_provider.login(user)
    guard = ApiGuard(auth_provider)

    denied = await guard.protect(
        make_request(token=token), db, GuardOptions(required_permissions=["leads.view", "leads.delete"])
    )
    assert denied.status_code == 403

    allowed = await guard.protect(
        make_request(token=token),
        db,
        GuardOptions(required_permissions=["leads.view", "leads.delete"], require_all=False),
    )
    assert allowed.success


@pytest.mark.asyncio
async def test_super_admin_passes_any_permission_check(db, auth_provider, owner):
    token = auth_provider.login(owner)
    user = await ApiGuard(auth_provider).authenticate(
        make_request(token=token), db, GuardOptions(required_permissions=["not.in.catalogue"])
    )
    assert user.is_super_admin


@pytest.mark.asyncio
async def test_derived_permissions_satisfy_guard_options(db, auth_provider, make_member):
    user = await make_member("sven@studionord.com", ["sales_manager"])
    token = auth_provider.login(user)
    result = await ApiGuard(auth_provider).protect(
        make_request(token=token), db, GuardOptions(required_permissions=["can_move_lead_to_won"])
    )
    assert result.success


@pytest.mark.asyncio
async def test_cache_skips_provider_until_invalidated(db, auth_provider, make_member):
    user = await make_member("cleo@studionord.com", ["sales"])
    token = auth_provider.login(user)
    cache = SessionCache(ttl_seconds=60)
    guard = ApiGuard(auth_provider, cache=cache)

    await guard.authenticate(make_request(token=token), db)
    await guard.authenticate(make_request(token=token), db)
    assert auth_provider.verify_calls == 1

    cache.invalidate_user(str(user.id))
    await guard.authenticate(make_request(token=token), db)
    assert auth_provider.verify_calls == 2


@pytest.mark.asyncio
async def test_unexpected_error_is_500(db, make_member):
    class BrokenProvider:
        async def verify_session(self, token):
            raise RuntimeError("auth backend unreachable")

    result = await ApiGuard(BrokenProvider()).protect(make_request(token="tok"), db)
    assert result.status_code == 500
    assert result.error == "Internal server error"


@pytest.mark.asyncio
async def test_authenticate_raises_typed_errors(db, auth_provider, make_member):
    with pytest.raises(Unauthenticated):
        await ApiGuard(auth_provider).authenticate(make_request(), db)

    user = await make_member("lina@studionord.com", ["limited"])
    token = auth_provider.login(user)
    with pytest.raises(InsufficientAuthority):
        await ApiGuard(auth_provider).authenticate(
            make_request(token=token), db, GuardOptions(required_permissions=["team.invite"])
        )


@pytest.mark.asyncio
async def test_invited_account_is_admitted_when_allowed(db, auth_provider, make_member):
    user = await make_member("ivy@studionord.com", ["sales"], status=UserStatus.INVITED)
    token = auth_provider.login(user)
    guard = ApiGuard(auth_provider, cache=SessionCache(ttl_seconds=60))

    current = await guard.authenticate(make_request(token=token), db, GuardOptions(allow_invited=True))
    assert current.status == UserStatus.INVITED

    # the cached entry still goes through the status check
    with pytest.raises(AccountNotActive):
        await guard.authenticate(make_request(token=token), db)
    assert auth_provider.verify_calls == 1


@pytest.mark.asyncio
async def test_allow_invited_still_rejects_disabled(db, auth_provider, make_member):
    user = await make_member("dora@studionord.com", ["sales"], status=UserStatus.DISABLED)
    token = auth_provider.login(user)
    with pytest.raises(AccountNotActive):
        await ApiGuard(auth_provider).authenticate(make_request(token=token), db, GuardOptions(allow_invited=True))
    assert auth_provider.signed_out == [token]
