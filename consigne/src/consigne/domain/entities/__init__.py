"""
Domain entities.
"""

from consigne.domain.entities.deposit_record import DepositRecord
from consigne.domain.entities.ledger_transaction import (
    LedgerTransaction,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    "DepositRecord",
    "LedgerTransaction",
    "TransactionStatus",
    "TransactionType",
]
