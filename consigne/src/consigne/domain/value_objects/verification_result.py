"""
Verification result types.

A verification call yields exactly one of ``Valid`` (carrying the accepted
transaction) or ``Invalid`` (carrying a reason). Call sites branch on the
type; there are no optional fields to probe.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class InvalidReason(str, Enum):
    """Why a deposit could not be confirmed."""

    NOT_FOUND = "not_found"
    NO_DEPOSIT_OUTPUT = "no_deposit_output"
    AMOUNT_INSUFFICIENT = "amount_insufficient"
    TOO_OLD = "too_old"
    INSUFFICIENT_CONFIRMATIONS = "insufficient_confirmations"
    SENDER_MISMATCH = "sender_mismatch"
    NO_QUALIFYING_TRANSACTION = "no_qualifying_transaction"
    LEDGER_UNAVAILABLE = "ledger_unavailable"
    ALREADY_ATTRIBUTED = "already_attributed"


@dataclass(frozen=True)
class TransactionDetails:
    """
    Deposit transaction as accepted by the verifier.

    Ephemeral: consumed by the reconciliation manager to populate the
    deposit record, never persisted as-is.
    """

    tx_id: str
    amount: int
    from_address: str
    to_address: str
    block_time: int
    confirmations: int
    output_index: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "tx_id": self.tx_id,
            "amount": self.amount,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "block_time": self.block_time,
            "confirmations": self.confirmations,
            "output_index": self.output_index,
        }


@dataclass(frozen=True)
class Valid:
    """A qualifying deposit was found."""

    details: TransactionDetails

    @property
    def is_valid(self) -> bool:
        return True


@dataclass(frozen=True)
class Invalid:
    """No qualifying deposit; ``reason`` says which rule failed."""

    reason: InvalidReason
    detail: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return False

    @property
    def message(self) -> str:
        """Human readable diagnostic."""
        if self.detail:
            return self.detail
        return self.reason.value.replace("_", " ")


VerificationResult = Union[Valid, Invalid]
