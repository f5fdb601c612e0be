"""
Application DTOs.
"""

from consigne.application.dto.reconciliation_dto import (
    RefundResult,
    SignupResult,
    SweepReport,
    VerificationOutcome,
)

__all__ = [
    "SignupResult",
    "VerificationOutcome",
    "RefundResult",
    "SweepReport",
]
