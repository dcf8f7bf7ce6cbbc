"""Tests for the JWT token service and the identity resolver."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from promaallem.application.exceptions import InvalidCredential, Unauthorized
from promaallem.application.use_cases.identity import IdentityResolver
from promaallem.domain.models import Identity
from promaallem.infrastructure.tokens import ALGORITHM, TokenService

SECRET = "test-secret-that-is-long-enough-for-hs256"


@pytest.fixture()
def tokens() -> TokenService:
    return TokenService(secret=SECRET, expiry_hours=1)


@pytest.fixture()
def resolver(tokens: TokenService) -> IdentityResolver:
    return IdentityResolver(tokens)


class TestTokenService:
    async def test_issue_then_verify(self, tokens: TokenService):
        token = tokens.issue(Identity(id="user-1", email="a@b.ma"))
        identity = await tokens.verify(token)
        assert identity == Identity(id="user-1", email="a@b.ma")

    async def test_wrong_secret(self, tokens: TokenService):
        token = TokenService(secret="another-secret-that-is-long-enough!!").issue(Identity(id="u"))
        with pytest.raises(InvalidCredential):
            await tokens.verify(token)

    async def test_expired(self, tokens: TokenService):
        past = datetime.now(UTC) - timedelta(hours=2)
        token = jwt.encode({"sub": "u", "exp": past}, SECRET, algorithm=ALGORITHM)
        with pytest.raises(InvalidCredential, match="expired"):
            await tokens.verify(token)

    async def test_garbage(self, tokens: TokenService):
        with pytest.raises(InvalidCredential):
            await tokens.verify("not-a-jwt")

    async def test_missing_subject(self, tokens: TokenService):
        token = jwt.encode(
            {"exp": datetime.now(UTC) + timedelta(hours=1)}, SECRET, algorithm=ALGORITHM
        )
        with pytest.raises(InvalidCredential):
            await tokens.verify(token)


class TestIdentityResolver:
    async def test_no_credential_is_guest(self, resolver: IdentityResolver):
        assert await resolver.resolve(None) is None
        assert await resolver.resolve("") is None

    async def test_invalid_credential_is_guest_on_optional_path(self, resolver: IdentityResolver):
        assert await resolver.resolve("bogus") is None

    async def test_valid_credential(self, resolver: IdentityResolver, tokens: TokenService):
        token = tokens.issue(Identity(id="user-1"))
        identity = await resolver.resolve(token)
        assert identity is not None
        assert identity.id == "user-1"

    async def test_required_without_credential(self, resolver: IdentityResolver):
        with pytest.raises(Unauthorized, match="Missing Authorization header"):
            await resolver.resolve(None, required=True)

    async def test_required_with_invalid_credential(self, resolver: IdentityResolver):
        with pytest.raises(Unauthorized, match="Invalid or expired token"):
            await resolver.resolve("bogus", required=True)

    async def test_require_returns_identity(self, resolver: IdentityResolver, tokens: TokenService):
        identity = await resolver.require(tokens.issue(Identity(id="user-1", email="a@b.ma")))
        assert identity == Identity(id="user-1", email="a@b.ma")

    @pytest.mark.parametrize("credential,message", [(None, "Missing"), ("", "Missing"), ("bogus", "Invalid")])
    async def test_require_rejects(self, resolver: IdentityResolver, credential, message):
        with pytest.raises(Unauthorized, match=message):
            await resolver.require(credential)
