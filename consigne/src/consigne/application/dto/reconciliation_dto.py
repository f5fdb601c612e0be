"""
Reconciliation Data Transfer Objects.

Return shapes of the reconciliation manager. Callers (HTTP layer, CLI)
serialize them as they see fit.
"""

from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass
class SignupResult:
    """Outcome of recording a signup."""

    success: bool
    message: str
    verified: bool = False
    deposit_address: Optional[str] = None
    deposit_tx_id: Optional[str] = None
    reason: Optional[str] = None  # InvalidReason value when verification failed

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class VerificationOutcome:
    """Outcome of a verification retry."""

    success: bool
    message: str
    verified: bool = False
    deposit_tx_id: Optional[str] = None
    verification_attempts: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RefundResult:
    """Outcome of a refund request."""

    success: bool
    message: str
    refund_tx_id: Optional[str] = None
    destination_address: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SweepReport:
    """Counts from one auto-verification sweep."""

    scanned: int = 0
    verified: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)
