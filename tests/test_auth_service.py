import time
import uuid

import pytest
from jose import jwt

from atelier.core.errors import Unauthenticated
from atelier.services.auth_service import JwtAuthService

SECRET = "test-jwt-secret"


def make_token(sub, exp_offset=3600, audience="authenticated", secret=SECRET):
    claims = {"sub": sub, "email": "olivia@studionord.com", "aud": audience, "exp": int(time.time()) + exp_offset}
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.mark.asyncio
async def test_valid_token_yields_identity():
    user_id = uuid.uuid4()
    identity = await JwtAuthService(SECRET).verify_session(make_token(str(user_id)))
    assert identity.user_id == user_id
    assert identity.email == "olivia@studionord.com"


@pytest.mark.asyncio
async def test_expired_token_is_rejected():
    with pytest.raises(Unauthenticated, match="expired"):
        await JwtAuthService(SECRET).verify_session(make_token(str(uuid.uuid4()), exp_offset=-60))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token",
    [
        make_token(str(uuid.uuid4()), secret="someone-else"),
        make_token(str(uuid.uuid4()), audience="anon"),
        make_token("not-a-uuid"),
        "garbage",
    ],
)
async def test_bad_tokens_are_rejected(token):
    with pytest.raises(Unauthenticated, match="Invalid token"):
        await JwtAuthService(SECRET).verify_session(token)
