"""Domain service interfaces (ports).

These protocols define the contracts that infrastructure implementations
must satisfy.  The application layer depends on these abstractions,
not on concrete classes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from promaallem.domain.models import (
    ChatTurn,
    Identity,
    Profile,
    ProviderCandidate,
    ProviderSummary,
    ServiceCatalogEntry,
    ServiceRequest,
)

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@runtime_checkable
class IMarketplaceStore(Protocol):
    """Interface for account, profile, catalog and booking persistence.

    Implementations: SQLiteMarketplaceStore.  Failures surface as
    ``UpstreamFailure``; a duplicate account email as ``ValidationError``.
    """

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def create_account(
        self,
        email: str,
        password: str,
        *,
        role: str,
        full_name: str | None = None,
        phone: str | None = None,
        city: str = "Casablanca",
        is_available: bool = True,
    ) -> Identity: ...

    async def authenticate(self, email: str, password: str) -> Identity | None: ...

    async def get_profile(self, profile_id: str) -> Profile | None: ...

    async def list_services(self) -> list[ServiceCatalogEntry]: ...

    async def search_services(self, name_fragment: str) -> list[ServiceCatalogEntry]: ...

    async def list_provider_candidates(self) -> list[ProviderCandidate]: ...

    async def list_available_providers(self, city: str | None = None) -> list[ProviderSummary]: ...

    async def insert_booking(self, booking: ServiceRequest) -> ServiceRequest: ...


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@runtime_checkable
class ITokenService(Protocol):
    """Issues and verifies bearer credentials.

    Implementations: TokenService (HS256 JWT).  ``verify`` raises
    ``InvalidCredential``.
    """

    def issue(self, identity: Identity) -> str: ...

    async def verify(self, token: str) -> Identity: ...


# ---------------------------------------------------------------------------
# Language model
# ---------------------------------------------------------------------------


@runtime_checkable
class ILanguageModel(Protocol):
    """Interface for a chat-completion language model.

    Implementations: PydanticAIChatModel.  The last turn is the new user
    message; earlier turns are sent as history in order.  Raises
    ``RateLimited``, ``UpstreamTimeout`` or ``UpstreamFailure``.
    """

    @property
    def model_name(self) -> str: ...

    async def complete(
        self,
        turns: Sequence[ChatTurn],
        *,
        temperature: float,
        max_tokens: int | None = None,
    ) -> str: ...
