"""
LedgerTransaction entity - journal entry for deposit and refund transfers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


class TransactionType(str, Enum):
    """Journaled transaction types."""

    DEPOSIT = "deposit"
    REFUND = "refund"
    SIGNUP = "signup"


class TransactionStatus(str, Enum):
    """Transaction processing states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class LedgerTransaction:
    """
    LedgerTransaction entity recording a transfer seen or issued by the core.

    Business rules:
    - (tx_hash, transaction_type) must be unique
    - Amount must be positive
    - Status transitions: PENDING -> CONFIRMED or FAILED
    - Cannot re-confirm or re-fail a transaction
    """

    id: UUID = field(default_factory=uuid4)
    tx_hash: str = field(default="")
    transaction_type: TransactionType = field(default=TransactionType.DEPOSIT)
    from_address: str = field(default="")
    to_address: str = field(default="")
    amount: int = field(default=0)
    status: TransactionStatus = field(default=TransactionStatus.PENDING)
    user_address: Optional[str] = field(default=None)
    confirmations: int = field(default=0)
    block_time: Optional[datetime] = field(default=None)
    created_at: datetime = field(default_factory=datetime.now)
    confirmed_at: Optional[datetime] = field(default=None)

    def __post_init__(self):
        """Validate transaction data after initialization."""
        if not self.tx_hash:
            raise ValueError("Transaction hash is required")

        if self.amount <= 0:
            raise ValueError("Transaction amount must be positive")

        if not self.to_address:
            raise ValueError("Destination address is required")

        if self.confirmations < 0:
            raise ValueError("Confirmations cannot be negative")

    def confirm(self, confirmations: Optional[int] = None) -> None:
        """
        Mark transaction as confirmed.

        Raises:
            ValueError: If not in PENDING status
        """
        if self.status != TransactionStatus.PENDING:
            raise ValueError(
                f"Cannot confirm transaction in {self.status.value} status"
            )

        self.status = TransactionStatus.CONFIRMED
        self.confirmed_at = datetime.now()
        if confirmations is not None:
            self.confirmations = confirmations

    def fail(self) -> None:
        """
        Mark transaction as failed.

        Raises:
            ValueError: If not in PENDING status
        """
        if self.status != TransactionStatus.PENDING:
            raise ValueError(f"Cannot fail transaction in {self.status.value} status")

        self.status = TransactionStatus.FAILED

    def to_dict(self) -> dict:
        """Convert entity to dictionary representation."""
        return {
            "id": str(self.id),
            "tx_hash": self.tx_hash,
            "transaction_type": self.transaction_type.value,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "amount": self.amount,
            "status": self.status.value,
            "user_address": self.user_address,
            "confirmations": self.confirmations,
            "block_time": self.block_time.isoformat() if self.block_time else None,
            "created_at": self.created_at.isoformat(),
            "confirmed_at": (
                self.confirmed_at.isoformat() if self.confirmed_at else None
            ),
        }
