"""Use-case layer: business logic decoupled from the HTTP transport."""

from promaallem.application.use_cases.accounts import AccountsUseCase, AuthSession
from promaallem.application.use_cases.booking import SosBookingResult, SosBookingUseCase
from promaallem.application.use_cases.diagnosis import DiagnosisUseCase
from promaallem.application.use_cases.identity import IdentityResolver
from promaallem.application.use_cases.triage import TriageResult, TriageUseCase

__all__ = [
    "AccountsUseCase",
    "AuthSession",
    "DiagnosisUseCase",
    "IdentityResolver",
    "SosBookingResult",
    "SosBookingUseCase",
    "TriageResult",
    "TriageUseCase",
]
