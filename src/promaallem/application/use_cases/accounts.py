"""Account use cases: registration, login and profile lookup."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from promaallem.application.exceptions import Unauthorized, ValidationError
from promaallem.domain.models import ROLES, Identity, Profile
from promaallem.domain.protocols import IMarketplaceStore, ITokenService


@dataclass
class AuthSession:
    identity: Identity
    token: str


class AccountsUseCase:
    """Creates accounts with their profile and issues bearer tokens."""

    def __init__(
        self,
        store: IMarketplaceStore,
        tokens: ITokenService,
        default_city: str = "Casablanca",
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.default_city = default_city

    async def register(
        self,
        *,
        email: str | None,
        password: str | None,
        role: str | None,
        full_name: str | None = None,
        phone: str | None = None,
        city: str | None = None,
    ) -> AuthSession:
        """Create the account together with its profile.

        Raises:
            ValidationError: Missing fields, unknown role or duplicate email.
            UpstreamFailure: The store failed.
        """
        if not email or not password or not role:
            raise ValidationError("Missing required fields")
        if role not in ROLES:
            raise ValidationError(f"Unknown role '{role}'", details=f"Expected one of: {', '.join(ROLES)}")

        identity = await self.store.create_account(
            email,
            password,
            role=role,
            full_name=full_name,
            phone=phone,
            city=city or self.default_city,
        )

        logger.info("Registered account | id={} role={}", identity.id, role)
        return AuthSession(identity=identity, token=self.tokens.issue(identity))

    async def login(self, *, email: str | None, password: str | None) -> AuthSession:
        if not email or not password:
            raise ValidationError("Missing required fields")

        identity = await self.store.authenticate(email, password)
        if identity is None:
            raise Unauthorized("Invalid email or password")
        return AuthSession(identity=identity, token=self.tokens.issue(identity))

    async def profile(self, identity: Identity) -> Profile:
        profile = await self.store.get_profile(identity.id)
        if profile is None:
            raise Unauthorized("No profile found for this account")
        return profile
