import time

import jwt
import pytest
import respx
from httpx import Response

from studyai.app.core import security
from studyai.app.core.config import settings
from studyai.app.core.security import (
    JWTIdentityVerifier,
    RemoteIdentityVerifier,
    create_identity_verifier,
)
from studyai.app.exceptions import AuthenticationError, InternalError

SECRET = "unit-test-secret-with-enough-length-for-hs256"
AUTH_URL = "https://auth.test/auth/v1"


def token(secret=SECRET, **overrides):
    now = int(time.time())
    claims = {"sub": "user-1", "email": "a@example.com", "aud": "authenticated", "exp": now + 60}
    claims.update(overrides)
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.mark.asyncio
async def test_jwt_verifier_accepts_valid_token():
    identity = await JWTIdentityVerifier(SECRET, "authenticated").verify(token())
    assert identity.user_id == "user-1"
    assert identity.email == "a@example.com"


@pytest.mark.asyncio
async def test_jwt_verifier_rejects_wrong_secret():
    with pytest.raises(AuthenticationError):
        await JWTIdentityVerifier(SECRET, "authenticated").verify(token(secret="another-secret-of-enough-length-123"))


@pytest.mark.asyncio
async def test_jwt_verifier_rejects_expired_token():
    with pytest.raises(AuthenticationError) as exc_info:
        await JWTIdentityVerifier(SECRET, "authenticated").verify(token(exp=int(time.time()) - 10))
    assert "expired" in exc_info.value.message


@pytest.mark.asyncio
async def test_jwt_verifier_rejects_wrong_audience():
    with pytest.raises(AuthenticationError):
        await JWTIdentityVerifier(SECRET, "authenticated").verify(token(aud="anon"))


@pytest.mark.asyncio
async def test_jwt_verifier_requires_subject():
    with pytest.raises(AuthenticationError):
        await JWTIdentityVerifier(SECRET, "authenticated").verify(token(sub=""))


@pytest.mark.asyncio
@respx.mock
async def test_remote_verifier_uses_user_endpoint():
    route = respx.get(f"{AUTH_URL}/user").mock(
        return_value=Response(200, json={"id": "remote-user", "email": "r@example.com"})
    )

    identity = await RemoteIdentityVerifier(AUTH_URL, api_key="anon-key").verify("opaque")

    assert identity.user_id == "remote-user"
    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer opaque"
    assert request.headers["apikey"] == "anon-key"


@pytest.mark.asyncio
@respx.mock
async def test_remote_verifier_rejects_401():
    respx.get(f"{AUTH_URL}/user").mock(return_value=Response(401, json={"msg": "invalid JWT"}))
    with pytest.raises(AuthenticationError):
        await RemoteIdentityVerifier(AUTH_URL).verify("bad")


@pytest.mark.asyncio
@respx.mock
async def test_remote_verifier_rejects_missing_id():
    respx.get(f"{AUTH_URL}/user").mock(return_value=Response(200, json={"email": "x@example.com"}))
    with pytest.raises(AuthenticationError):
        await RemoteIdentityVerifier(AUTH_URL).verify("token")


def test_factory_prefers_local_secret(monkeypatch):
    monkeypatch.setattr(settings, "auth_jwt_secret", SECRET)
    monkeypatch.setattr(settings, "auth_url", AUTH_URL)
    assert isinstance(create_identity_verifier(), security.JWTIdentityVerifier)


def test_factory_falls_back_to_remote(monkeypatch):
    monkeypatch.setattr(settings, "auth_jwt_secret", "")
    monkeypatch.setattr(settings, "auth_url", AUTH_URL)
    assert isinstance(create_identity_verifier(), security.RemoteIdentityVerifier)


def test_factory_requires_configuration(monkeypatch):
    monkeypatch.setattr(settings, "auth_jwt_secret", "")
    monkeypatch.setattr(settings, "auth_url", "")
    with pytest.raises(InternalError):
        create_identity_verifier()
