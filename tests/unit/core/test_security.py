"""
JWT 与认证后端测试
"""

from datetime import timedelta

import pytest
from starlette.requests import HTTPConnection

from devmate.core.security import DevMateUser, JWTAuthBackend, create_access_token, verify_token


def make_connection(authorization: str | None = None) -> HTTPConnection:
    headers = [(b"authorization", authorization.encode())] if authorization else []
    return HTTPConnection({"type": "http", "headers": headers})


class TestTokens:
    def test_create_and_verify(self):
        token = create_access_token({"sub": "user-1", "role": "admin"})
        payload = verify_token(token)

        assert payload["sub"] == "user-1"
        assert payload["role"] == "admin"
        assert "exp" in payload

    def test_expired_token(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))
        assert verify_token(token) is None

    def test_garbage_token(self):
        assert verify_token("not-a-jwt") is None


class TestJWTAuthBackend:
    @pytest.mark.asyncio
    async def test_valid_bearer_token(self):
        token = create_access_token({"sub": "42", "username": "alice", "role": "admin"})

        credentials, user = await JWTAuthBackend().authenticate(make_connection(f"Bearer {token}"))

        assert isinstance(user, DevMateUser)
        assert user.identity == "42"
        assert user.display_name == "alice"
        assert user.is_authenticated is True
        assert set(credentials.scopes) == {"authenticated", "admin"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "Basic abc", "Bearer", "Bearer invalid.token.value"])
    async def test_missing_or_invalid_credentials_are_anonymous(self, header):
        assert await JWTAuthBackend().authenticate(make_connection(header)) is None

    @pytest.mark.asyncio
    async def test_token_without_subject(self):
        token = create_access_token({"role": "admin"})
        assert await JWTAuthBackend().authenticate(make_connection(f"Bearer {token}")) is None
