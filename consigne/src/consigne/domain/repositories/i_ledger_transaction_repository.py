"""
Ledger transaction journal repository interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from consigne.domain.entities.ledger_transaction import (
    LedgerTransaction,
    TransactionType,
)


class ILedgerTransactionRepository(ABC):
    """Interface for ledger transaction journal operations."""

    @abstractmethod
    async def create(self, transaction: LedgerTransaction) -> LedgerTransaction:
        """
        Journal a new transaction.

        Raises:
            DuplicateEntityError: If (tx hash, type) already journaled
        """

    @abstractmethod
    async def get_by_tx_hash(
        self,
        tx_hash: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> Optional[LedgerTransaction]:
        """
        Get journaled transaction by hash.

        Args:
            tx_hash: Ledger transaction id
            transaction_type: Optional type filter

        Returns:
            LedgerTransaction if found, None otherwise
        """

    @abstractmethod
    async def update(self, transaction: LedgerTransaction) -> LedgerTransaction:
        """
        Update status and confirmation fields.

        Raises:
            EntityNotFoundError: If transaction not found
        """

    @abstractmethod
    async def list_by_user(
        self,
        user_address: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> list[LedgerTransaction]:
        """List journaled transactions for a user, newest first."""
