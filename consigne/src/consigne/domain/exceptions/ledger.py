"""
Ledger-related exceptions.

Transport failures talking to the ledger indexer and to the wallet bridge
that builds refund transactions.
"""

from typing import Optional

from consigne.domain.exceptions.base import ConsigneException


class LedgerError(ConsigneException):
    """Base exception for ledger indexer operations."""


class LedgerUnavailableError(LedgerError):
    """Raised when the indexer cannot be reached or answers with 5xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """
        Initialize ledger unavailable error.

        Args:
            message: Error message
            status_code: HTTP status code from the indexer, if any
        """
        super().__init__(message, code="LEDGER_UNAVAILABLE")
        self.status_code = status_code


class LedgerTimeoutError(LedgerError):
    """Raised when an indexer read exceeds its timeout."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Ledger read '{operation}' exceeded timeout of {timeout}s",
            code="LEDGER_TIMEOUT",
        )
        self.operation = operation
        self.timeout = timeout


class LedgerQuotaExceededError(LedgerError):
    """Raised when the indexer rejects calls for quota reasons (402/429)."""

    def __init__(self, status_code: int):
        super().__init__(
            f"Ledger indexer quota exceeded (HTTP {status_code})",
            code="LEDGER_QUOTA_EXCEEDED",
        )
        self.status_code = status_code


class RefundSubmissionError(ConsigneException):
    """Raised when a refund transaction cannot be built or broadcast."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """
        Initialize refund submission error.

        Args:
            message: Error message
            status_code: HTTP status code from the wallet bridge, if any
        """
        super().__init__(message, code="REFUND_SUBMISSION_FAILED")
        self.status_code = status_code
