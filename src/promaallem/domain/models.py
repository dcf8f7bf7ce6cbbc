"""Domain entities and value objects.

These are the core data structures of the intake domain, independent of any
infrastructure or framework concerns.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

CLIENT_ROLE = "client"
PROVIDER_ROLE = "maallem"
ROLES = (CLIENT_ROLE, PROVIDER_ROLE)

STATUS_PENDING = "pending"

UNSURE_CATEGORY = "Unsure"

# ---------------------------------------------------------------------------
# Accounts & profiles (persisted by the store)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Identity:
    """An authenticated subject, valid for the lifetime of one request."""

    id: str
    email: str | None = None


@dataclass
class Profile:
    id: str
    role: str
    full_name: str | None = None
    phone: str | None = None
    city: str = "Casablanca"
    rating: float | None = None
    avatar_url: str | None = None
    is_available: bool = True


# ---------------------------------------------------------------------------
# Bookings & matching
# ---------------------------------------------------------------------------


@dataclass
class ServiceRequest:
    """A booking. Either ``client_id`` or ``guest_phone`` is always set."""

    client_id: str | None
    guest_name: str | None
    guest_phone: str | None
    service_id: int | None
    address: str | None
    is_emergency: bool
    maallem_id: str | None = None
    status: str = STATUS_PENDING
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class ProviderCandidate:
    id: str
    is_available: bool
    role: str = PROVIDER_ROLE


@dataclass
class ProviderSummary:
    id: str
    full_name: str | None
    role: str
    city: str | None
    rating: float | None
    avatar_url: str | None


@dataclass
class ServiceCatalogEntry:
    id: int
    name: str
    description: str | None = None
    base_price: float | None = None


# ---------------------------------------------------------------------------
# AI triage
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value if item is not None)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _clamped_int(value: Any, low: int, high: int) -> int | None:
    """Round a number (or numeric string such as ``"85%"``) into ``[low, high]``."""
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return max(low, min(high, round(value)))


class AnalysisResult(BaseModel):
    """Structured triage of a free-text problem description.

    Only ``category`` is mandatory.  Models are sloppy with the other fields,
    so they are coerced instead of rejected: scores are rounded and clamped
    into range, scalars become text and a lone string becomes a one-item list.
    """

    model_config = ConfigDict(extra="ignore")

    category: str
    confidence_score: int | None = Field(default=None, ge=0, le=100)
    problem_type: str | None = None
    urgency_level: int | None = Field(default=None, ge=1, le=5)
    estimated_duration: str | None = None
    estimated_price_range: str | None = None
    suggested_package: str | None = None
    possible_complications: list[str] = Field(default_factory=list)
    safety_instructions: str | None = None
    required_tools: list[str] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _non_blank_category(cls, value: Any) -> Any:
        text = _as_text(value)
        if not text or not text.strip():
            raise ValueError("category is required")
        return text.strip()

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> int | None:
        return _clamped_int(value, 0, 100)

    @field_validator("urgency_level", mode="before")
    @classmethod
    def _clamp_urgency(cls, value: Any) -> int | None:
        return _clamped_int(value, 1, 5)

    @field_validator(
        "problem_type",
        "estimated_duration",
        "estimated_price_range",
        "suggested_package",
        "safety_instructions",
        mode="before",
    )
    @classmethod
    def _text(cls, value: Any) -> str | None:
        return _as_text(value)

    @field_validator("possible_complications", "required_tools", mode="before")
    @classmethod
    def _text_list(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        if isinstance(value, (list, tuple)):
            return [text for text in map(_as_text, value) if text]
        return [_as_text(value)]


@dataclass(frozen=True)
class ParsedAnalysis:
    """Model output that parsed and validated cleanly."""

    result: AnalysisResult

    @property
    def category(self) -> str:
        return self.result.category

    def as_payload(self) -> dict:
        return self.result.model_dump()


@dataclass(frozen=True)
class DegradedAnalysis:
    """Model output that could not be parsed; keeps the cleaned text."""

    raw_response: str

    @property
    def category(self) -> str:
        return UNSURE_CATEGORY

    def as_payload(self) -> dict:
        return {"category": UNSURE_CATEGORY, "raw_response": self.raw_response}


Analysis = ParsedAnalysis | DegradedAnalysis


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class ChatTurn(BaseModel):
    """A single message in a diagnosis conversation."""

    role: Literal["system", "user", "assistant"] = Field(
        description="Message role: 'system', 'user' or 'assistant'"
    )
    content: str = Field(description="Message content")
