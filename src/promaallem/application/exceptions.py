"""Application-level exceptions.

These are business-logic errors, not HTTP errors. The presentation layer
(FastAPI exception handlers) translates them into appropriate HTTP responses.
"""

from __future__ import annotations

RATE_LIMIT_DETAILS = "Le service IA est très sollicité. Veuillez patienter 1 minute."


class IntakeError(Exception):
    """Base class for every error a use case reports to its caller."""

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(IntakeError, ValueError):
    """Missing or malformed required input."""


class Unauthorized(IntakeError):
    """Missing or invalid credential on a path that requires one."""


class UpstreamFailure(IntakeError):
    """The store or the language model is unreachable or erroring."""


class UpstreamTimeout(UpstreamFailure):
    """The language model did not answer within the configured timeout."""


class RateLimited(IntakeError):
    """The language-model provider is throttling us."""

    def __init__(self, message: str = "Rate limit exceeded", *, details: str | None = None) -> None:
        super().__init__(message, details=details or RATE_LIMIT_DETAILS)


class InvalidCredential(Exception):
    """Raised by token verifiers; never leaves the identity resolver."""
