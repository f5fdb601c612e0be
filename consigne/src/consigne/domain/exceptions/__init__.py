"""
Domain exceptions package.
"""

# Base exceptions
from consigne.domain.exceptions.base import (
    ConsigneException,
    DuplicateEntityError,
    EntityNotFoundError,
    ValidationError,
)

# Deposit lifecycle exceptions
from consigne.domain.exceptions.deposit import (
    AlreadyRefundedError,
    DepositError,
    DepositNotVerifiedError,
    MissingSenderWalletError,
    RefundInProgressError,
    SignupAlreadyCompletedError,
    VerificationFailedError,
)

# Ledger exceptions
from consigne.domain.exceptions.ledger import (
    LedgerError,
    LedgerQuotaExceededError,
    LedgerTimeoutError,
    LedgerUnavailableError,
    RefundSubmissionError,
)

__all__ = [
    # Base
    "ConsigneException",
    "EntityNotFoundError",
    "DuplicateEntityError",
    "ValidationError",
    # Deposit
    "DepositError",
    "VerificationFailedError",
    "MissingSenderWalletError",
    "DepositNotVerifiedError",
    "AlreadyRefundedError",
    "RefundInProgressError",
    "SignupAlreadyCompletedError",
    # Ledger
    "LedgerError",
    "LedgerUnavailableError",
    "LedgerTimeoutError",
    "LedgerQuotaExceededError",
    "RefundSubmissionError",
]
