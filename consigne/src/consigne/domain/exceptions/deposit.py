"""
Deposit lifecycle exceptions.

Raised by the reconciliation manager when a requested transition is not
allowed for the current state of a deposit record.
"""

from typing import Optional

from consigne.domain.exceptions.base import ConsigneException


class DepositError(ConsigneException):
    """Base exception for deposit lifecycle operations."""


class VerificationFailedError(DepositError):
    """Raised when no qualifying deposit transaction could be confirmed."""

    def __init__(self, reason: str, detail: Optional[str] = None):
        """
        Initialize verification failed error.

        Args:
            reason: InvalidReason value
            detail: Human readable diagnostic
        """
        super().__init__(
            detail or f"Deposit verification failed: {reason}",
            code="VERIFICATION_FAILED",
        )
        self.reason = reason
        self.detail = detail


class MissingSenderWalletError(DepositError):
    """Raised when verification needs a sender wallet the user never gave."""

    def __init__(self, user_address: str):
        super().__init__(
            f"No sender wallet address available for {user_address}",
            code="MISSING_SENDER_WALLET",
        )
        self.user_address = user_address


class DepositNotVerifiedError(DepositError):
    """Raised when an operation requires a verified deposit."""

    def __init__(self, user_address: str, reason: Optional[str] = None):
        message = f"Deposit for {user_address} is not verified"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, code="DEPOSIT_NOT_VERIFIED")
        self.user_address = user_address
        self.reason = reason


class AlreadyRefundedError(DepositError):
    """Raised when a refund is requested for a record already refunded."""

    def __init__(self, user_address: str, refund_tx_id: Optional[str] = None):
        super().__init__(
            f"Deposit for {user_address} has already been refunded",
            code="ALREADY_REFUNDED",
        )
        self.user_address = user_address
        self.refund_tx_id = refund_tx_id


class RefundInProgressError(DepositError):
    """Raised when another refund for the same record holds the claim."""

    def __init__(self, user_address: str):
        super().__init__(
            f"A refund for {user_address} is already in progress",
            code="REFUND_IN_PROGRESS",
        )
        self.user_address = user_address


class SignupAlreadyCompletedError(DepositError):
    """Raised when completing a signup that is already completed."""

    def __init__(self, user_address: str):
        super().__init__(
            f"Signup for {user_address} is already completed",
            code="SIGNUP_ALREADY_COMPLETED",
        )
        self.user_address = user_address
