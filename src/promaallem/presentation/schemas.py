"""HTTP request/response schemas (Pydantic models) for the REST API.

Request fields the use cases validate themselves are optional here, so a
missing value yields the 400 envelope from the use case rather than a
framework 422.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from promaallem.domain.models import ChatTurn

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    email: str | None = None
    password: str | None = None
    role: str | None = Field(default=None, description="'client' or 'maallem'")
    full_name: str | None = None
    phone: str | None = None
    city: str | None = None


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: str | None = None
    password: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str | None = None


class RegisterResponse(BaseModel):
    message: str = "User registered successfully"
    user: UserResponse
    token: str


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


class ProfileResponse(BaseModel):
    id: str
    role: str
    full_name: str | None = None
    phone: str | None = None
    city: str | None = None
    rating: float | None = None
    avatar_url: str | None = None
    is_available: bool


# ---------------------------------------------------------------------------
# Catalog & providers
# ---------------------------------------------------------------------------


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    base_price: float | None = None


class ServiceMatchResponse(BaseModel):
    id: int
    name: str
    base_price: float | None = None


class ProviderSummaryResponse(BaseModel):
    id: str
    full_name: str | None = None
    role: str
    city: str | None = None
    rating: float | None = None
    avatar_url: str | None = None


# ---------------------------------------------------------------------------
# SOS bookings
# ---------------------------------------------------------------------------


class SosBookingRequest(BaseModel):
    """Request body for POST /api/bookings/sos.

    ``urgency`` is deliberately untyped: only ``true`` or ``"urgent"`` mark
    an emergency, every other JSON value means "not an emergency".
    """

    service_id: int | None = None
    address: str | None = None
    phone: str | None = Field(default=None, description="Required for guest bookings")
    full_name: str | None = None
    urgency: Any = None


class BookingResponse(BaseModel):
    id: str
    client_id: str | None = None
    guest_name: str | None = None
    guest_phone: str | None = None
    maallem_id: str | None = None
    service_id: int | None = None
    status: str
    is_emergency: bool
    address: str | None = None
    created_at: str | None = None


class SosBookingResponse(BaseModel):
    message: str = "SOS Booking created"
    booking: BookingResponse
    maallem_found: bool


# ---------------------------------------------------------------------------
# AI
# ---------------------------------------------------------------------------


class AnalyzeSosRequest(BaseModel):
    """Request body for POST /api/ai/analyze-sos."""

    description: str | None = None
    location: str | None = None


class AnalyzeSosResponse(BaseModel):
    analysis: dict[str, Any] = Field(
        description="The structured analysis, or {category: 'Unsure', raw_response} when degraded"
    )
    service_match: ServiceMatchResponse | None = None


class DiagnoseRequest(BaseModel):
    """Request body for POST /api/chat/diagnose.

    The backend keeps no chat history: send prior turns every time.
    """

    message: str | None = None
    previous_messages: list[ChatTurn] | None = None


class DiagnoseResponse(BaseModel):
    reply: str


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None


def error_responses(*status_codes: int) -> dict[int | str, dict[str, Any]]:
    """OpenAPI ``responses`` entries documenting the error envelope."""
    return {code: {"model": ErrorResponse} for code in status_codes}
