"""JWT token service.

Issues HS256 bearer tokens at registration/login and verifies them for the
identity resolver.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt

from promaallem.application.exceptions import InvalidCredential
from promaallem.domain.models import Identity

ALGORITHM = "HS256"


class TokenService:
    """Signs and verifies identity tokens with a shared secret."""

    def __init__(self, secret: str, expiry_hours: int = 24) -> None:
        self.secret = secret
        self.expiry_hours = expiry_hours

    def issue(self, identity: Identity) -> str:
        """Create a signed JWT containing the identity claims."""
        now = datetime.now(UTC)
        payload = {
            "sub": identity.id,
            "email": identity.email or "",
            "exp": now + timedelta(hours=self.expiry_hours),
            "iat": now,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> dict:
        """Decode and verify a JWT. Raises on invalid/expired tokens."""
        return jwt.decode(token, self.secret, algorithms=[ALGORITHM])

    async def verify(self, token: str) -> Identity:
        try:
            claims = self.decode(token)
        except jwt.ExpiredSignatureError as exc:
            raise InvalidCredential("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidCredential("Invalid token") from exc

        subject = claims.get("sub")
        if not subject:
            raise InvalidCredential("Token has no subject")
        return Identity(id=subject, email=claims.get("email") or None)
