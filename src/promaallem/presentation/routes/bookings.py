"""Booking routes: emergency (SOS) intake."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from loguru import logger

from promaallem.application.use_cases.booking import SosBookingUseCase
from promaallem.domain.models import Identity
from promaallem.presentation.dependencies import get_optional_identity
from promaallem.presentation.schemas import (
    BookingResponse,
    SosBookingRequest,
    SosBookingResponse,
    error_responses,
)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.post(
    "/sos",
    response_model=SosBookingResponse,
    status_code=201,
    responses=error_responses(400, 500),
)
async def create_sos_booking(
    body: SosBookingRequest,
    request: Request,
    identity: Identity | None = Depends(get_optional_identity),
):
    """Create an emergency booking.

    Authentication is optional: without a valid bearer token the booking is
    a guest booking and ``phone`` becomes mandatory.  The booking is created
    even when no maallem is available (``maallem_found: false``).
    """
    uc: SosBookingUseCase = request.app.state.sos_uc

    logger.info(
        "POST /api/bookings/sos | client={} service={} urgency={!r}",
        identity.id if identity else None,
        body.service_id,
        body.urgency,
    )

    result = await uc.execute(
        identity,
        guest_name=body.full_name,
        guest_phone=body.phone,
        service_id=body.service_id,
        address=body.address,
        urgency=body.urgency,
    )

    return SosBookingResponse(
        booking=BookingResponse(**asdict(result.booking)),
        maallem_found=result.maallem_found,
    )
