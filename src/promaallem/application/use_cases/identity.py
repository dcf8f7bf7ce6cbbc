"""Identity resolution for optional- and mandatory-auth paths."""

from __future__ import annotations

from loguru import logger

from promaallem.application.exceptions import InvalidCredential, Unauthorized
from promaallem.domain.models import Identity
from promaallem.domain.protocols import ITokenService


class IdentityResolver:
    """Turns an optional bearer credential into zero or one identity.

    On the optional path (SOS bookings) a missing or bad credential simply
    means "guest".  On the mandatory path (``require``) it is an
    ``Unauthorized`` error.
    """

    def __init__(self, tokens: ITokenService) -> None:
        self.tokens = tokens

    async def resolve(self, credential: str | None, *, required: bool = False) -> Identity | None:
        if required:
            return await self.require(credential)
        if not credential:
            return None

        try:
            return await self.tokens.verify(credential)
        except InvalidCredential as exc:
            logger.debug("Ignoring invalid credential on optional-auth path: {}", exc)
            return None

    async def require(self, credential: str | None) -> Identity:
        if not credential:
            raise Unauthorized("Missing Authorization header")
        try:
            return await self.tokens.verify(credential)
        except InvalidCredential as exc:
            raise Unauthorized("Invalid or expired token") from exc
