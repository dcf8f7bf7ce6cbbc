"""SOS booking use case: normalization, provider matching and persistence.

Provider matching reads an availability snapshot and the booking write
happens afterwards without a compare-and-swap, so two concurrent SOS
bookings can end up assigned to the same maallem.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from promaallem.application.exceptions import UpstreamFailure, ValidationError
from promaallem.domain.models import (
    PROVIDER_ROLE,
    STATUS_PENDING,
    Identity,
    ProviderCandidate,
    ServiceRequest,
)
from promaallem.domain.protocols import IMarketplaceStore

URGENT_TOKEN = "urgent"

ProviderMatcher = Callable[[Sequence[ProviderCandidate]], str | None]


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_urgency(urgency: Any) -> bool:
    """Only boolean ``True`` or the exact string ``"urgent"`` mean emergency."""
    return urgency is True or (isinstance(urgency, str) and urgency == URGENT_TOKEN)


def normalize_booking(
    identity: Identity | None,
    guest_name: str | None,
    guest_phone: str | None,
    service_id: int | None,
    address: str | None,
    urgency: Any,
) -> ServiceRequest:
    """Build the canonical booking record for an incoming request.

    Raises:
        ValidationError: If there is neither an identity nor a guest phone.
    """
    client_id = identity.id if identity else None
    if client_id is None and not guest_phone:
        raise ValidationError("Phone number is required for guest bookings")

    return ServiceRequest(
        client_id=client_id,
        guest_name=guest_name,
        guest_phone=guest_phone or None,
        service_id=service_id,
        address=address,
        is_emergency=normalize_urgency(urgency),
        status=STATUS_PENDING,
    )


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def first_available(candidates: Sequence[ProviderCandidate]) -> str | None:
    """Return the id of the first available maallem, in snapshot order."""
    for candidate in candidates:
        if candidate.role == PROVIDER_ROLE and candidate.is_available:
            return candidate.id
    return None


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


@dataclass
class SosBookingResult:
    booking: ServiceRequest
    maallem_found: bool


class SosBookingUseCase:
    """Creates an emergency booking for a guest or an authenticated client.

    Parameters
    ----------
    store:
        The marketplace store.
    matcher:
        Provider selection strategy; defaults to first-available.
    """

    def __init__(self, store: IMarketplaceStore, matcher: ProviderMatcher = first_available) -> None:
        self.store = store
        self.matcher = matcher

    async def execute(
        self,
        identity: Identity | None,
        *,
        guest_name: str | None = None,
        guest_phone: str | None = None,
        service_id: int | None = None,
        address: str | None = None,
        urgency: Any = None,
    ) -> SosBookingResult:
        booking = normalize_booking(identity, guest_name, guest_phone, service_id, address, urgency)
        booking.maallem_id = await self._match_provider()

        saved = await self.store.insert_booking(booking)

        logger.info(
            "SOS booking created | booking={} client={} maallem={} emergency={}",
            saved.id,
            saved.client_id,
            saved.maallem_id,
            saved.is_emergency,
        )
        return SosBookingResult(booking=saved, maallem_found=saved.maallem_id is not None)

    async def _match_provider(self) -> str | None:
        """Best effort: a failing lookup means "no match", not a failed booking."""
        try:
            candidates = await self.store.list_provider_candidates()
        except UpstreamFailure as exc:
            logger.warning("Provider lookup failed, booking without a maallem: {}", exc)
            return None
        return self.matcher(candidates)
