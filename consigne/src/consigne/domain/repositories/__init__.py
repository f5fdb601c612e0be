"""
Repository interfaces.
"""

from consigne.domain.repositories.i_deposit_repository import IDepositRepository
from consigne.domain.repositories.i_ledger_transaction_repository import (
    ILedgerTransactionRepository,
)

__all__ = [
    "IDepositRepository",
    "ILedgerTransactionRepository",
]
