"""FastAPI dependencies: bearer extraction and identity resolution.

The identity is resolved once per request by the ``IdentityResolver`` stored
on ``app.state`` and handed to the route by value.
"""

from __future__ import annotations

from fastapi import Request

from promaallem.application.use_cases.identity import IdentityResolver
from promaallem.domain.models import Identity

BEARER_PREFIX = "bearer "


def bearer_credential(authorization: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX) :].strip() or None


async def get_optional_identity(request: Request) -> Identity | None:
    """Optional auth: bad or missing credentials mean "guest"."""
    resolver: IdentityResolver = request.app.state.identity_resolver
    return await resolver.resolve(bearer_credential(request.headers.get("Authorization")))


async def get_current_identity(request: Request) -> Identity:
    """Mandatory auth: raises ``Unauthorized`` for bad or missing credentials."""
    resolver: IdentityResolver = request.app.state.identity_resolver
    return await resolver.require(bearer_credential(request.headers.get("Authorization")))
